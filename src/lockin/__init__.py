"""LockIn: local to-do list and focus timer with study-time analytics."""

__version__ = "0.1.0"
