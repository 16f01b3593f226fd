"""In-memory cache of study plans keyed by (folder, user)."""

import time
from collections.abc import Callable
from uuid import UUID

from cachetools import TTLCache

from studyhub.schemas.study_plans import StudyPlan

CacheKey = tuple[UUID, UUID]


class StudyPlanCache:
    """
    Bounded LRU cache with a per-entry time-to-live.

    With max_entries=1 it holds only the most recently used plan, so
    reading folder B after folder A evicts A.
    """

    def __init__(
        self,
        max_entries: int = 256,
        ttl_seconds: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._entries: TTLCache = TTLCache(maxsize=max_entries, ttl=ttl_seconds, timer=clock)

    def get(self, folder_id: UUID, user_id: UUID) -> StudyPlan | None:
        return self._entries.get((folder_id, user_id))

    def put(self, folder_id: UUID, user_id: UUID, plan: StudyPlan) -> None:
        self._entries[(folder_id, user_id)] = plan

    def invalidate(self, folder_id: UUID, user_id: UUID) -> None:
        self._entries.pop((folder_id, user_id), None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)
