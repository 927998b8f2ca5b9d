"""Bidirectional perceptual-hash matching between listing and buyer pattern photos."""

__version__ = "0.1.0"
