"""Personal to-do list client with live task snapshots and per-task countdowns."""

__version__ = "0.1.0"
