"""Manuscript Chat: retrieval-augmented conversation over one uploaded PDF manuscript."""

__version__ = "1.0.0"
