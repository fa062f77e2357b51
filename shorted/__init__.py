"""Collect, normalise, store and query short-position data for ASX-listed shares."""

__version__ = "0.1.0"