"""IFQE portal backend: submission archives and indicator catalog."""

__version__ = "1.0.0"
