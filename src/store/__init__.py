"""State storage layer.

This package stores immutable system-state snapshots under tokens.
It reconstructs memory ranges and optionally persists snapshots to disk.
"""
