"""Snapshot, compare and restore sets of environment variables."""

__version__ = "0.1.0"

__all__ = ["__version__"]