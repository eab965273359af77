"""The monitor loop orchestrating capture, analysis and persistence.

Stages run as separate asyncio tasks connected by bounded queues:

    ticker/capture -> frames -> analyze -> observations -> score + persist

The ticker drops a capture while a frame is queued or being analyzed, so
a slow model never scores a screenshot older than one tick.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from llamaproctor.analyzer.base import ActivityAnalyzer
from llamaproctor.capture.base import CaptureSource
from llamaproctor.domain.models import (
    CapturedFrame,
    FocusUpdate,
    MonitorSummary,
    Observation,
    StudentRecord,
)
from llamaproctor.monitor.assignment import AssignmentPoller
from llamaproctor.storage.base import StorageError, StudentStore
from llamaproctor.tracker.focus import FocusTracker, derive_suggestion
from llamaproctor.utils.imaging import numpy_to_base64_png, resize_for_mllm

logger = logging.getLogger(__name__)


class MonitorLoop:
    """Monitors one student's screen until stopped.

    The store must already be connected; the capture source is opened
    and closed by ``run()``.
    """

    def __init__(
        self,
        capture: CaptureSource,
        analyzer: ActivityAnalyzer,
        store: StudentStore,
        assignments: AssignmentPoller,
        student_id: str,
        tracker: FocusTracker | None = None,
        student_name: str = "",
        classroom: str = "1",
        capture_interval: float = 8.0,
        max_consecutive_errors: int = 5,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        include_screenshot: bool = False,
        queue_size: int = 1,
    ) -> None:
        self._capture = capture
        self._analyzer = analyzer
        self._store = store
        self._assignments = assignments
        self._student_id = student_id
        self._tracker = tracker or FocusTracker()
        self._student_name = student_name
        self._classroom = classroom
        self._capture_interval = capture_interval
        self._max_consecutive_errors = max_consecutive_errors
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff
        self._include_screenshot = include_screenshot
        self._queue_size = queue_size

        self._running = False
        self._seeded = False
        self._analyzing = False
        self._consecutive_errors = 0
        self._max_cycles: int | None = None
        self._done: asyncio.Event | None = None
        self._summary: MonitorSummary | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def tracker(self) -> FocusTracker:
        return self._tracker

    async def run(self, max_cycles: int | None = None) -> MonitorSummary:
        """Monitor until ``stop()``, ``max_cycles`` observations, or too many errors."""
        self._running = True
        self._max_cycles = max_cycles
        self._consecutive_errors = 0
        self._analyzing = False
        self._done = asyncio.Event()
        summary = self._summary = MonitorSummary(
            student_id=self._student_id, started_at=datetime.now()
        )

        logger.info(
            "Monitor starting for student %s (classroom %s, every %.1fs)",
            self._student_id, self._classroom, self._capture_interval,
        )

        frames: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        observations: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)

        try:
            async with self._capture:
                await self._load_prior_state()
                await self._mark_active(True)

                tasks = [
                    asyncio.create_task(self._assignments.run(), name="assignments"),
                    asyncio.create_task(self._tick(frames), name="capture"),
                    asyncio.create_task(self._analyze_worker(frames, observations), name="analyze"),
                    asyncio.create_task(self._update_worker(observations), name="update"),
                ]
                try:
                    await self._done.wait()
                finally:
                    self._running = False
                    self._assignments.stop()
                    for task in tasks:
                        task.cancel()
                    await asyncio.gather(*tasks, return_exceptions=True)
                    await self._mark_active(False)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            summary.aborted = True
            logger.error("Monitor fatal error: %s", e)

        self._running = False
        entity = self._tracker.get(self._student_id)
        if entity is not None:
            summary.final_focus_score = entity.focus_score
            if entity.last_observation is not None:
                summary.final_suggestion = entity.last_observation.suggestion
        summary.ended_at = datetime.now()
        logger.info(
            "Monitor finished: cycles=%d, persisted=%d, failures=%d, focus=%s",
            summary.cycles, summary.persisted, summary.failures, summary.final_focus_score,
        )
        return summary

    def stop(self) -> None:
        """Signal the monitor loop to stop gracefully."""
        self._running = False
        if self._done is not None:
            self._done.set()
        logger.info("Monitor stop requested")

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _tick(self, frames: asyncio.Queue) -> None:
        """Capture a frame every interval and hand it to the analyzer."""
        while self._running:
            task = self._assignments.task
            if not task:
                logger.debug("No assignment yet, skipping capture")
            elif self._analyzing or frames.full():
                self._summary.dropped_captures += 1
                logger.info("Analysis still running, skipping capture")
            else:
                try:
                    frame = await self._capture.capture_frame()
                    self._summary.captures += 1
                    self._analyzing = True
                    frames.put_nowait((frame, task))
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self._record_failure("capture", e)
            await asyncio.sleep(self._capture_interval)

    async def _analyze_worker(self, frames: asyncio.Queue, observations: asyncio.Queue) -> None:
        while self._running:
            frame, task = await frames.get()
            try:
                observation = await self._analyzer.analyze(frame, task)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._record_failure("analyze", e)
                continue
            finally:
                self._analyzing = False
                frames.task_done()
            logger.info(
                "Frame %d | score %d/5 | %s",
                frame.frame_number, observation.raw_score, observation.short_description,
            )
            await observations.put((frame, observation))

    async def _update_worker(self, observations: asyncio.Queue) -> None:
        while self._running:
            frame, observation = await observations.get()
            try:
                await self._update(frame, observation)
                self._record_success()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._record_failure("persist", e)
            finally:
                observations.task_done()
            self._summary.cycles += 1
            if self._max_cycles is not None and self._summary.cycles >= self._max_cycles:
                logger.info("Reached %d cycles", self._max_cycles)
                self.stop()

    # ------------------------------------------------------------------
    # Score + persist
    # ------------------------------------------------------------------

    async def _update(self, frame: CapturedFrame, observation: Observation) -> None:
        """Apply one observation and store the result.

        The entity lock is held from loading prior state to the end of
        the write so observations for the same student never interleave.
        """
        student_id = self._student_id
        async with self._tracker.lock(student_id):
            if not self._seeded:
                await self._seed_from_store()

            update = self._tracker.record_observation(
                student_id,
                observation.raw_score,
                observation.description,
                observation.short_description,
            )
            record = self._build_record(update, observation, frame)
            logger.info(
                "Student %s focus %d/10 (%s)",
                student_id, update.focus_score, record.suggestion,
            )
            await self._persist(record)
            self._summary.persisted += 1

    def _build_record(
        self,
        update: FocusUpdate,
        observation: Observation,
        frame: CapturedFrame,
    ) -> StudentRecord:
        entity = self._tracker.get(self._student_id)
        screenshot = None
        if self._include_screenshot:
            screenshot = numpy_to_base64_png(resize_for_mllm(frame.image))
        return StudentRecord(
            id=self._student_id,
            name=self._student_name,
            focus_score=update.focus_score,
            description=observation.description,
            short_description=observation.short_description,
            history=list(update.history),
            suggestion=derive_suggestion(update.focus_score).value,
            model_suggestion=observation.advice,
            classroom=self._classroom,
            active=entity.active if entity is not None else True,
            screenshot=screenshot,
        )

    async def _persist(self, record: StudentRecord) -> None:
        """Write ``record``, retrying transient failures with backoff.

        The same record is re-sent on every attempt; the focus delta is
        never recomputed.
        """
        attempt = 0
        while True:
            try:
                await self._store.upsert_student(record)
                return
            except StorageError as e:
                if not e.transient or attempt >= self._max_retries:
                    raise
                delay = self._retry_backoff * (2 ** attempt)
                attempt += 1
                logger.warning(
                    "Store write failed (attempt %d/%d), retrying in %.1fs: %s",
                    attempt, self._max_retries, delay, e,
                )
                await asyncio.sleep(delay)

    async def _load_prior_state(self) -> None:
        """Seed the tracker from the store before monitoring starts."""
        try:
            async with self._tracker.lock(self._student_id):
                await self._seed_from_store()
        except StorageError as e:
            logger.warning("Could not load prior state for %s, will retry: %s", self._student_id, e)

    async def _seed_from_store(self) -> None:
        record = await self._store.get_student(self._student_id)
        if record is None:
            logger.info("No stored record for student %s, starting at default focus", self._student_id)
            self._tracker.seed(self._student_id)
        else:
            logger.info(
                "Loaded student %s (focus %d, %d history entries)",
                self._student_id, record.focus_score, len(record.history),
            )
            self._tracker.seed(self._student_id, record.focus_score, record.history)
        self._seeded = True

    async def _mark_active(self, active: bool) -> None:
        """Flip the liveness flag locally and in the store."""
        self._tracker.set_active(self._student_id, active)
        try:
            await self._store.set_active(self._student_id, active)
        except StorageError as e:
            logger.warning("Failed to set active=%s for %s: %s", active, self._student_id, e)

    # ------------------------------------------------------------------
    # Error accounting
    # ------------------------------------------------------------------

    def _record_success(self) -> None:
        self._consecutive_errors = 0

    def _record_failure(self, stage: str, error: Exception) -> None:
        self._consecutive_errors += 1
        self._summary.failures += 1
        logger.error(
            "Error in %s stage (attempt %d/%d): %s",
            stage, self._consecutive_errors, self._max_consecutive_errors, error,
        )
        if self._consecutive_errors >= self._max_consecutive_errors:
            logger.error("Too many consecutive errors, aborting")
            self._summary.aborted = True
            self.stop()
