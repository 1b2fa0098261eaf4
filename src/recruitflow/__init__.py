"""Recruitment hiring pipeline engine."""

__version__ = "0.1.0"
