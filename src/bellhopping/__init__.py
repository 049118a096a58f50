"""Sabre hotel search integration with luxury program enrichment."""

__version__ = "0.1.0"
