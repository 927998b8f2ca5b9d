"""Shared building blocks for the pattern matching services."""

__version__ = "0.1.0"
