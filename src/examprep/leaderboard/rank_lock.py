"""Named exclusive locks for rank recalculation, one per series.

Single-process deployments use ``RankLockRegistry``. The arq worker hands
``recalculate_ranks`` a Redis lock with the same name instead, so several
worker processes still serialize per series.
"""

from __future__ import annotations

import asyncio
from typing import Protocol


class RankLock(Protocol):
    async def __aenter__(self) -> object: ...

    async def __aexit__(self, *exc_info: object) -> bool | None: ...


def lock_name(series: str | None) -> str:
    return f"leaderboard:recalc:{series or 'all'}"


class RankLockRegistry:
    """In-process ``asyncio.Lock`` per lock name, created on first use."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def for_series(self, series: str | None) -> asyncio.Lock:
        name = lock_name(series)
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock


default_registry = RankLockRegistry()
