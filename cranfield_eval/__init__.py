"""Batch evaluation of ranked retrieval on Cranfield-style test collections."""

__version__ = "1.0.0"
