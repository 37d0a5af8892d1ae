"""Sinks that hand published sustainability snapshots to external storage."""

from .base_exporter import BaseSink
from .json_exporter import JSONLinesSink

__all__ = ["BaseSink", "JSONLinesSink"]
