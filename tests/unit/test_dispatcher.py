"""
Unit tests for the command dispatcher.
"""

import time

import pytest

from tcpcommander.commands.dispatcher import CommandDispatcher
from tcpcommander.commands.parser import ConnectCommand
from tcpcommander.core.scheduler import WorkScheduler
from tcpcommander.core.shared import CommandMailbox, SharedFlag
from tcpcommander.reporting import ReportKind


class FakeClient:
    """Records the calls a dispatcher makes."""

    def __init__(self):
        self.calls = []

    def connect(self, host, port):
        self.calls.append(("connect", host, port))
        return False

    def read(self, byte_count):
        self.calls.append(("read", byte_count))
        return False

    def write(self):
        self.calls.append(("write",))
        return False


@pytest.fixture
def mailbox() -> CommandMailbox:
    return CommandMailbox()


@pytest.fixture
def stop_flag() -> SharedFlag:
    return SharedFlag("stop", latching=True)


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def dispatcher(reactor, fake_client, mailbox, stop_flag, reporter) -> CommandDispatcher:
    return CommandDispatcher(reactor, fake_client, mailbox, stop_flag, reporter, poll_interval=0.01)


class TestCheckForCommand:
    """Tests for a single poll cycle."""

    def test_empty_mailbox_rearms(self, dispatcher, fake_client, reactor):
        dispatcher.check_for_command()

        assert fake_client.calls == []
        assert reactor.pending == 1
        dispatcher.cancel()

    @pytest.mark.parametrize("line,call", [
        ("c 127.0.0.1 5555", ("connect", "127.0.0.1", "5555")),
        ("r 15", ("read", 15)),
        ("R 0", ("read", 0)),
        ("w", ("write",)),
    ])
    def test_routes_to_client(self, dispatcher, fake_client, mailbox, line, call):
        mailbox.set(line)
        dispatcher.check_for_command()

        assert fake_client.calls == [call]
        assert mailbox.take_and_clear() == ""
        dispatcher.cancel()

    def test_command_consumed_once(self, dispatcher, fake_client, mailbox):
        mailbox.set("w")
        dispatcher.check_for_command()
        dispatcher.check_for_command()

        assert fake_client.calls == [("write",)]
        dispatcher.cancel()

    @pytest.mark.parametrize("line", ["c 127.0.0.1", "r", "r abc"])
    def test_malformed_reported_and_polling_continues(
        self, dispatcher, fake_client, mailbox, recorder, reactor, line
    ):
        mailbox.set(line)
        dispatcher.check_for_command()

        assert fake_client.calls == []
        assert recorder.kinds()[-1] is ReportKind.MALFORMED_COMMAND
        assert reactor.pending == 1
        dispatcher.cancel()

    def test_unrecognized_reported(self, dispatcher, mailbox, recorder, reactor):
        mailbox.set("z 1 2 3")
        dispatcher.check_for_command()

        assert recorder.last(ReportKind.UNRECOGNIZED_COMMAND) is not None
        assert reactor.pending == 1
        dispatcher.cancel()

    def test_stop_does_not_rearm(self, dispatcher, mailbox, stop_flag, reactor):
        mailbox.set("x")
        dispatcher.check_for_command()

        assert dispatcher.stopped
        assert stop_flag.is_set()
        assert reactor.pending == 0

        dispatcher.start()
        assert reactor.pending == 0

    def test_last_command_recorded(self, dispatcher, mailbox):
        mailbox.set("c host 80")
        dispatcher.check_for_command()

        assert dispatcher.last_command == ConnectCommand("host", "80")
        dispatcher.cancel()


class TestPolling:
    """Tests for the recurring poll driven by the event loop."""

    def test_stop_ends_polling_and_loop(self, dispatcher, mailbox, reactor):
        dispatcher.start()
        reactor.timer("operator").arm(0.05, lambda: mailbox.set("x"))

        reactor.run(timeout=2.0)

        assert dispatcher.stopped

    def test_commands_dispatched_while_paused(
        self, reactor, dispatcher, fake_client, mailbox, stop_flag, reporter
    ):
        """Test that pausing stalls the scheduler but not the dispatcher."""
        pause_flag = SharedFlag("pause")
        scheduler = WorkScheduler(reactor, reporter, pause_flag, stop_flag, period=0.01)

        pause_flag.set()
        mailbox.set("q")
        mailbox.set("c 1.2.3.4 80")

        scheduler.start()
        dispatcher.start()
        reactor.run_for(0.1)

        assert fake_client.calls == [("connect", "1.2.3.4", "80")]
        assert scheduler.completed == 0

        mailbox.set("x")
        reactor.run(timeout=2.0)
        assert scheduler.stopped

    def test_stop_calls_on_stop(self, reactor, fake_client, mailbox, stop_flag, reporter):
        stopped = []
        dispatcher = CommandDispatcher(
            reactor, fake_client, mailbox, stop_flag, reporter,
            poll_interval=0.01, on_stop=lambda: stopped.append(stop_flag.is_set()),
        )
        mailbox.set("x")
        dispatcher.check_for_command()

        assert stopped == [True]

    def test_stop_ends_loop_within_one_poll(self, reactor, fake_client, mailbox, stop_flag, reporter):
        """Test that a slow work cycle does not delay shutdown after stop."""
        scheduler = WorkScheduler(reactor, reporter, SharedFlag("pause"), stop_flag, period=2.0)
        dispatcher = CommandDispatcher(
            reactor, fake_client, mailbox, stop_flag, reporter,
            poll_interval=0.05, on_stop=scheduler.stop,
        )
        scheduler.start()
        dispatcher.start()
        mailbox.set("x")

        start = time.monotonic()
        reactor.run(timeout=1.0)

        assert time.monotonic() - start < 0.5
        assert scheduler.stopped
        assert scheduler.completed == 0
