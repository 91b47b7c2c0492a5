from .monitor import InputMonitor, USAGE

__all__ = ["InputMonitor", "USAGE"]
