"""State ingestion helpers.

This package validates submitted memory regions and parses state files.
It prepares immutable snapshots for the store layer.
"""
