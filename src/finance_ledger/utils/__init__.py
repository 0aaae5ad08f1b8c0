"""Shared helpers for parsing, dates and logging."""
