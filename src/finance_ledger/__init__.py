"""Ingest bank CSV exports into per-account ledgers and analyse them."""

__version__ = "0.1.0"
