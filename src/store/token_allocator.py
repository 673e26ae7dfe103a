"""Collision-free snapshot token allocation."""

from __future__ import annotations

import random
import secrets
import threading
from typing import Callable

from core.constants import MAX_TOKEN, TOKEN_BITS


class TokenAllocator:
    """Issue positive 63-bit tokens that are never handed out twice.

    Every issued token is remembered for the allocator's lifetime, so a
    discarded token is not reissued. Callers may pass an ``is_taken``
    predicate to also avoid tokens held by an external archive.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._random: random.Random = (
            random.Random(seed) if seed is not None else secrets.SystemRandom()
        )
        self._issued: set[int] = set()
        self._lock = threading.Lock()

    def allocate(self, is_taken: Callable[[int], bool] | None = None) -> int:
        """Return a fresh token.

        Args:
            is_taken: Optional predicate for tokens reserved elsewhere.

        Returns:
            Token in ``[1, 2**63 - 1]``.
        """
        with self._lock:
            while True:
                candidate = self._random.getrandbits(TOKEN_BITS)
                if candidate <= 0 or candidate > MAX_TOKEN:
                    continue
                if candidate in self._issued:
                    continue
                if is_taken is not None and is_taken(candidate):
                    continue
                self._issued.add(candidate)
                return candidate

    def reserve(self, token: int) -> None:
        """Mark an externally known token as issued."""
        with self._lock:
            self._issued.add(token)
