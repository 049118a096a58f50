"""Logging and caching primitives."""
