"""Remote task and pipeline manifest resolution."""

__version__ = "0.1.0"
