"""RetroState exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class RetroStateError(Exception):
    """Base exception for all RetroState failures."""


class StateConfigError(RetroStateError):
    """Raised for invalid runtime configuration."""


class InvalidRegionError(RetroStateError):
    """Raised when a submitted memory region is structurally invalid."""


class InvalidRangeError(RetroStateError):
    """Raised when a memory range query has a negative length."""


class UnknownTokenError(RetroStateError):
    """Raised when a token was never issued by the store or was discarded."""


class StateStoreError(RetroStateError):
    """Raised for state archive and persistence failures."""


class StateFileError(RetroStateError):
    """Raised for malformed state description files."""


class StateVerificationError(RetroStateError):
    """Raised when automated verification checks fail."""
