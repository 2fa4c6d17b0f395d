"""Multilingual narrated video export engine."""

__version__ = "0.1.0"
