"""Hybrid Coach training plan engine."""

__version__ = "1.0.0"
