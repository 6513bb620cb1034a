# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Background image generation jobs, backfill and cleanup."""

import asyncio
import logging
import uuid
from collections.abc import Callable
from contextlib import aclosing
from dataclasses import dataclass

from sqlalchemy.orm import Session

from timeline.config import settings
from timeline.database import SessionLocal
from timeline.exceptions import StorageError
from timeline.integrations.base import BlobStore
from timeline.integrations.gemini import ImageGenerator
from timeline.services import event_service, lifecycle_service
from timeline.services.storage_service import (
    background_key,
    best_effort_delete,
    get_blob_store,
    sketch_key,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackgroundJob:
    """Request to generate images for an event's place."""

    event_id: uuid.UUID
    location: str


async def generate_for_event(
    db: Session,
    generator: ImageGenerator,
    event_id: uuid.UUID,
    location: str,
    store: BlobStore | None = None,
    key_builder: Callable[[uuid.UUID, int, str], str] = sketch_key,
) -> int:
    """Generate and attach images for one event.

    Stops quietly once the event turns out to be deleted.

    Returns:
        Number of images saved.
    """
    store = store or get_blob_store()
    saved = 0
    async with aclosing(generator.generate(location)) as images:
        async for image in images:
            try:
                background = await asyncio.to_thread(
                    lifecycle_service.attach_background_image,
                    db,
                    event_id,
                    image,
                    store=store,
                    key_builder=key_builder,
                )
            except StorageError as e:
                logger.error(f"Could not store image {image.index} for {event_id}: {e}")
                continue
            if background is None:
                break
            saved += 1
    return saved


class BackgroundJobRunner:
    """Fire-and-forget queue processed by a single asyncio worker.

    Jobs run at most once: a full queue drops new jobs and stopping the
    runner abandons whatever is still pending.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        generator_factory: Callable[[], ImageGenerator] = ImageGenerator,
        store: BlobStore | None = None,
        maxsize: int | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.generator_factory = generator_factory
        self.store = store
        self.maxsize = maxsize if maxsize is not None else settings.background_queue_size
        self._queue: asyncio.Queue[BackgroundJob] | None = None
        self._worker: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def start(self) -> None:
        """Start the worker on the current event loop."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._worker = asyncio.create_task(self._work(), name="background-jobs")
        logger.info("Background job runner started")

    async def stop(self) -> None:
        """Cancel the worker and drop pending jobs."""
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        dropped = self.pending
        self._worker = None
        self._queue = None
        self._loop = None
        if dropped:
            logger.warning(f"Abandoned {dropped} pending background job(s)")
        logger.info("Background job runner stopped")

    def enqueue(self, event_id: uuid.UUID, location: str) -> bool:
        """Schedule generation without waiting. Never raises.

        Returns:
            True if the job was accepted.
        """
        if not self.running or self._queue is None or self._loop is None:
            logger.warning(
                f"Background job runner not running, skipping event {event_id}"
            )
            return False

        job = BackgroundJob(event_id=event_id, location=location)
        try:
            running_loop = asyncio.get_running_loop()
        except RuntimeError:
            running_loop = None

        if running_loop is self._loop:
            return self._put(job)
        self._loop.call_soon_threadsafe(self._put, job)
        return True

    def _put(self, job: BackgroundJob) -> bool:
        if self._queue is None:
            return False
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning(f"Background job queue full, dropping event {job.event_id}")
            return False
        logger.debug(f"Queued background generation for event {job.event_id}")
        return True

    async def _work(self) -> None:
        queue = self._queue
        if queue is None:
            return
        while True:
            job = await queue.get()
            try:
                await self.run_job(job)
            except Exception as e:
                logger.error(f"Background generation failed for {job.event_id}: {e}")
            finally:
                queue.task_done()

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def run_job(self, job: BackgroundJob) -> int:
        """Generate and attach images for one job."""
        generator = self.generator_factory()
        if not generator.enabled:
            logger.warning(
                f"Image generation disabled, skipping backgrounds for {job.event_id}"
            )
            return 0

        db = self.session_factory()
        try:
            saved = await generate_for_event(
                db, generator, job.event_id, job.location, store=self.store
            )
        finally:
            db.close()
        logger.info(f"Generated {saved} background image(s) for event {job.event_id}")
        return saved


async def backfill_backgrounds(
    db: Session,
    generator: ImageGenerator | None = None,
    store: BlobStore | None = None,
    delay: float = 3.0,
) -> dict[str, int]:
    """Generate backgrounds for every located event that has none.

    Sleeps ``delay`` seconds between events to stay under rate limits.
    """
    generator = generator or ImageGenerator()
    if not generator.enabled:
        logger.error("GEMINI_API_KEY is not set, nothing to do")
        return {"events": 0, "images": 0}

    events = event_service.list_events_without_backgrounds(db)
    logger.info(f"Found {len(events)} located event(s) without backgrounds")

    images = 0
    for position, event in enumerate(events):
        logger.info(f"Generating backgrounds for {event.title!r} ({event.location})")
        images += await generate_for_event(
            db,
            generator,
            event.id,
            event.location,
            store=store,
            key_builder=background_key,
        )
        if delay and position < len(events) - 1:
            await asyncio.sleep(delay)

    return {"events": len(events), "images": images}


def cleanup_backgrounds(db: Session, store: BlobStore | None = None) -> int:
    """Remove every background image blob and row.

    Returns:
        Number of rows removed.
    """
    store = store or get_blob_store()
    removed = 0
    for background in event_service.list_background_images(db):
        best_effort_delete(store, background.url)
        if event_service.remove_background_image(db, background.id):
            removed += 1
    logger.info(f"Removed {removed} background image(s)")
    return removed


job_runner = BackgroundJobRunner()
