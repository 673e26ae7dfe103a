"""Unit tests for token allocation."""

from __future__ import annotations

from core.constants import MAX_TOKEN
from store.token_allocator import TokenAllocator


def test_allocate_returns_positive_63_bit_tokens() -> None:
    """Allocated tokens should stay within the positive 63-bit range."""
    allocator = TokenAllocator()

    tokens = [allocator.allocate() for _ in range(100)]

    assert all(0 < token <= MAX_TOKEN for token in tokens)


def test_allocate_never_repeats_tokens() -> None:
    """Tokens should be unique for the allocator lifetime."""
    allocator = TokenAllocator(seed=7)

    tokens = [allocator.allocate() for _ in range(500)]

    assert len(set(tokens)) == len(tokens)


def test_allocate_skips_tokens_taken_elsewhere() -> None:
    """Allocation should skip candidates reported as taken."""
    first_token = TokenAllocator(seed=3).allocate()
    allocator = TokenAllocator(seed=3)

    token = allocator.allocate(lambda candidate: candidate == first_token)

    assert token != first_token


def test_reserved_token_is_not_reissued() -> None:
    """Reserved tokens should be treated as already issued."""
    first_token = TokenAllocator(seed=11).allocate()
    allocator = TokenAllocator(seed=11)
    allocator.reserve(first_token)

    token = allocator.allocate()

    assert token != first_token


def test_seeded_allocators_are_reproducible() -> None:
    """Equal seeds should yield equal token sequences."""
    first = TokenAllocator(seed=42)
    second = TokenAllocator(seed=42)

    assert [first.allocate() for _ in range(5)] == [second.allocate() for _ in range(5)]
