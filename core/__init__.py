"""Shared infrastructure: settings, paths, SQLite helpers and logging."""
