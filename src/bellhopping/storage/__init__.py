"""Persistence collaborators for search analytics."""

from .search_log import SearchLogSink, SqliteSearchLog

__all__ = ["SearchLogSink", "SqliteSearchLog"]
