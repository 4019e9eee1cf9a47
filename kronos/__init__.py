"""Kronos scenario-based portfolio stress scoring."""

__version__ = "1.0.0"
