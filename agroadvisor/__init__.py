"""Soil test based fertilizer and amendment advisor."""

__version__ = "1.0.0"
