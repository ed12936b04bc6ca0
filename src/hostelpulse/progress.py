"""Ephemeral progress state for the long-running fetch and enrichment jobs."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone

PENDING = "pending"
LOADING = "loading"
SUCCESS = "success"
ERROR = "error"


@dataclass
class ProgressItem:
    key: str
    status: str = PENDING
    error: str | None = None
    elapsed_seconds: float = 0.0
    booking_count: int = 0
    skipped: int = 0
    filtered: int = 0


@dataclass
class JobProgress:
    total: int
    current: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    items: list[ProgressItem] = field(default_factory=list)

    @classmethod
    def for_keys(cls, keys: list[str]) -> JobProgress:
        return cls(total=len(keys), items=[ProgressItem(key=k) for k in keys])

    def item(self, key: str) -> ProgressItem:
        for item in self.items:
            if item.key == key:
                return item
        raise KeyError(key)

    def count(self, status: str) -> int:
        return sum(1 for item in self.items if item.status == status)

    def snapshot(self) -> JobProgress:
        """Copy safe to hand to observers."""
        return copy.deepcopy(self)
