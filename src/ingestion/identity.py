"""
Sequential memory ID allocation.

IDs are dense, start at a fixed value per run and follow processing order
(file order, then position within the file). Neighbouring sentences of a
document therefore get neighbouring IDs, which retrieval can use to fetch
the context around a hit.
"""

from __future__ import annotations


class IdentityAllocator:
    """
    Hands out strictly increasing memory IDs as strings.

    One allocator is owned by one ingestion job and shared by every file of
    that job, whatever its format. Nothing is persisted: a new run starts
    again at ``start``.

    Args:
        start: First ID to hand out (default: 0).

    Example:
        >>> allocator = IdentityAllocator()
        >>> allocator.next(), allocator.next()
        ('0', '1')
        >>> allocator.cursor
        2
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError(f"start must be non-negative, got {start}")
        self._start = start
        self._cursor = start

    @property
    def cursor(self) -> int:
        """The value the next call to ``next()`` will return."""
        return self._cursor

    @property
    def start(self) -> int:
        return self._start

    @property
    def issued(self) -> int:
        """Number of IDs handed out so far."""
        return self._cursor - self._start

    def next(self) -> str:
        memory_id = str(self._cursor)
        self._cursor += 1
        return memory_id

    def __repr__(self) -> str:
        return f"IdentityAllocator(start={self._start}, cursor={self._cursor})"
