"""evtx-timeline — flatten Windows event logs into time-sorted CSV tables."""

__version__ = "0.1.0"
