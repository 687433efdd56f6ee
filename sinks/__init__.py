"""Consumers of published backup results."""
from __future__ import annotations

from .base import LogSink, ResultSink
from .jsonl import JsonlSink

__all__ = ["JsonlSink", "LogSink", "ResultSink"]
