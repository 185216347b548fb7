"""Per-process record of which files are indexed.

Each file id maps to either the in-flight ingestion task or a completed
marker. Concurrent callers for the same file await the same task, so a file
is ingested at most once per process. A failed ingestion removes its entry
so the next caller retries.
"""

import asyncio
from typing import Awaitable, Callable

_COMPLETE = object()


class IngestionTracker:
    def __init__(self) -> None:
        self._entries: dict[str, asyncio.Future | object] = {}

    def is_loaded(self, file_id: str) -> bool:
        return self._entries.get(file_id) is _COMPLETE

    def is_pending(self, file_id: str) -> bool:
        return isinstance(self._entries.get(file_id), asyncio.Future)

    async def run_once(self, file_id: str, factory: Callable[[], Awaitable[object]]) -> bool:
        """Run `factory` for this file unless it already ran or is running.

        Args:
            file_id (str): Key to deduplicate on.
            factory (Callable): Zero-argument coroutine function doing the ingestion.

        Returns:
            bool: True if this call started the ingestion, False if it joined or skipped it.

        Raises:
            Exception: Whatever the ingestion raised; every waiting caller sees it.
        """
        entry = self._entries.get(file_id)
        if entry is _COMPLETE:
            return False
        if isinstance(entry, asyncio.Future):
            # shield: a cancelled waiter must not cancel the shared ingestion
            await asyncio.shield(entry)
            return False

        task = asyncio.ensure_future(factory())
        self._entries[file_id] = task
        task.add_done_callback(lambda t: self._settle(file_id, t))
        await asyncio.shield(task)
        return True

    def _settle(self, file_id: str, task: asyncio.Future) -> None:
        if self._entries.get(file_id) is not task:
            return
        if task.cancelled() or task.exception() is not None:
            del self._entries[file_id]
        else:
            self._entries[file_id] = _COMPLETE

    def forget(self, file_id: str) -> asyncio.Future | None:
        """Drop a file so the next request ingests it again (e.g. after deletion).

        Returns:
            asyncio.Future | None: The ingestion still running for this file, if any.
        """
        entry = self._entries.pop(file_id, None)
        return entry if isinstance(entry, asyncio.Future) else None

    def clear(self) -> None:
        self._entries.clear()
