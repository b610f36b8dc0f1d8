"""Append-only, date-partitioned activity logs with a filtering query engine."""

__version__ = "0.3.0"
