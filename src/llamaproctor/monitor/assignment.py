"""Polling of the teacher's current assignment."""

from __future__ import annotations

import asyncio
import logging

from llamaproctor.storage.base import StorageError, StudentStore

logger = logging.getLogger(__name__)


class AssignmentPoller:
    """Keeps the current task description of one classroom up to date.

    A ``fixed_task`` disables polling entirely; the monitor then always
    analyzes against that text.
    """

    def __init__(
        self,
        store: StudentStore,
        classroom: str,
        interval: float = 10.0,
        fixed_task: str | None = None,
    ) -> None:
        self._store = store
        self._classroom = classroom
        self._interval = interval
        self._fixed_task = fixed_task
        self._task = fixed_task or ""
        self._stopped = False

    @property
    def task(self) -> str:
        return self._task

    async def refresh(self) -> str:
        """Fetch the assignment once; keep the previous task on failure."""
        if self._fixed_task:
            return self._task
        try:
            description = await self._store.get_assignment(self._classroom)
        except StorageError as e:
            logger.warning("Failed to fetch assignment for classroom %s: %s", self._classroom, e)
            return self._task

        description = (description or "").strip()
        if description != self._task:
            if description:
                logger.info("Assignment for classroom %s: %s", self._classroom, description[:100])
            else:
                logger.info("No assignment for classroom %s, analysis paused", self._classroom)
            self._task = description
        return self._task

    async def run(self) -> None:
        """Poll until stopped."""
        self._stopped = False
        while not self._stopped:
            await self.refresh()
            if self._fixed_task:
                return
            await asyncio.sleep(self._interval)

    def stop(self) -> None:
        self._stopped = True
