"""Quazar: an interactive quiz engine for JSON question banks."""

__version__ = "2.11.4"
