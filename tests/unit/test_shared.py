"""
Unit tests for the cross-thread mailbox and flags.
"""

import threading

import pytest

from tcpcommander.core.shared import CommandMailbox, SharedFlag


class TestCommandMailbox:
    """Tests for CommandMailbox."""

    def test_empty_take_returns_empty(self):
        """Test that an empty mailbox yields an empty string."""
        mailbox = CommandMailbox()

        assert mailbox.take_and_clear() == ""

    def test_empty_take_is_idempotent(self):
        """Test repeated takes on an empty mailbox."""
        mailbox = CommandMailbox()

        assert [mailbox.take_and_clear() for _ in range(3)] == ["", "", ""]

    def test_take_clears_slot(self):
        """Test that a command is consumed at most once."""
        mailbox = CommandMailbox()
        mailbox.set("w")

        assert mailbox.take_and_clear() == "w"
        assert mailbox.take_and_clear() == ""

    @pytest.mark.parametrize("commands", [
        ["c 127.0.0.1 5555"],
        ["c 127.0.0.1 5555", "r 10"],
        ["r 1", "r 2", "r 3", "w"],
    ])
    def test_last_write_wins(self, commands):
        """Test that unconsumed commands are overwritten by newer ones."""
        mailbox = CommandMailbox()
        for command in commands:
            mailbox.set(command)

        assert mailbox.take_and_clear() == commands[-1]
        assert mailbox.take_and_clear() == ""

    def test_concurrent_producer_consumer(self):
        """Test that every taken command was set, and none is taken twice."""
        mailbox = CommandMailbox()
        produced = [f"r {i}" for i in range(1, 2001)]
        taken = []
        done = threading.Event()

        def producer():
            for command in produced:
                mailbox.set(command)
            done.set()

        thread = threading.Thread(target=producer)
        thread.start()

        while not done.is_set():
            command = mailbox.take_and_clear()
            if command:
                taken.append(command)
        thread.join()
        leftover = mailbox.take_and_clear()
        if leftover:
            taken.append(leftover)

        assert len(taken) == len(set(taken))
        assert set(taken) <= set(produced)
        # Consumption follows production order
        indices = [produced.index(c) for c in taken]
        assert indices == sorted(indices)


class TestSharedFlag:
    """Tests for SharedFlag."""

    def test_set_and_clear(self):
        flag = SharedFlag("pause")

        assert not flag.is_set()
        flag.set()
        assert flag.is_set()
        assert bool(flag) is True
        flag.clear()
        assert not flag.is_set()

    def test_latching_flag_cannot_be_cleared(self):
        """Test that a latched stop flag stays set."""
        flag = SharedFlag("stop", latching=True)

        flag.clear()
        assert not flag.is_set()

        flag.set()
        flag.clear()
        assert flag.is_set()

    def test_repr(self):
        assert repr(SharedFlag("pause", initial=True)) == "SharedFlag('pause', True)"
