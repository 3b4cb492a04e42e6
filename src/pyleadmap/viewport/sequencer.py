"""Per-stream fetch tickets for last-request-wins."""

from __future__ import annotations


class RequestSequencer:
    """Hands out increasing tickets; only the latest one may publish.

    One instance per independent fetch stream. A completion whose
    ticket is no longer current must be dropped without touching
    markers or caches.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._latest = 0

    @property
    def current(self) -> int:
        return self._latest

    def next_ticket(self) -> int:
        self._latest += 1
        return self._latest

    def invalidate(self) -> None:
        """Make every ticket issued so far stale."""
        self._latest += 1

    def is_current(self, ticket: int) -> bool:
        return ticket == self._latest

    def __repr__(self) -> str:
        return f"RequestSequencer(name={self.name!r}, current={self._latest})"
