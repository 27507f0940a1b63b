"""Caffeine: a generic JSON document store served over HTTP."""

__version__ = "0.3.0"
