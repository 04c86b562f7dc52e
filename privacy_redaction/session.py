"""
Last-request-wins redaction session.

A session runs one redaction pipeline at a time for the image currently
attached to a report. Each submit starts a new request generation; any
request still in flight from an earlier generation becomes stale, stops at
its next cancellation check (between scales, before compositing and before
commit) and returns None. A stale result is never committed over a newer one.
"""

import asyncio
import logging
import threading
from typing import Hashable, Optional

import numpy as np

from privacy_redaction.multiscale import DetectionCancelled
from privacy_redaction.pipeline import RedactionPipeline, RedactionResult

logger = logging.getLogger(__name__)


class RedactionSession:
    """Serializes redaction requests for a changing source image.

    Usage:
        session = RedactionSession(pipeline)
        result = session.submit("photo-1", frame)            # sync
        result = await session.submit_async("photo-2", frame)  # async
        session.close()

    submit / submit_async return None when the request was superseded by a
    newer one or the session was closed while it ran.
    """

    def __init__(self, pipeline: RedactionPipeline) -> None:
        self._pipeline = pipeline
        self._lock = threading.Lock()
        self._generation = 0
        self._image_key: Optional[Hashable] = None
        self._latest: Optional[RedactionResult] = None
        self._closed = False

    @property
    def latest(self) -> Optional[RedactionResult]:
        """Result of the most recent request that was allowed to commit."""
        with self._lock:
            return self._latest

    @property
    def image_key(self) -> Optional[Hashable]:
        with self._lock:
            return self._image_key

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def submit(self, image_key: Hashable, frame: np.ndarray) -> Optional[RedactionResult]:
        """Redact frame in the calling thread.

        Raises:
            RuntimeError: If the session is closed.
        """
        generation = self._begin(image_key)
        return self._run(generation, image_key, frame)

    async def submit_async(self, image_key: Hashable, frame: np.ndarray) -> Optional[RedactionResult]:
        """Redact frame in a worker thread without blocking the event loop.

        The generation is taken before the work is scheduled, so requests
        are ordered by when they were submitted, not by when a worker
        thread picks them up.
        """
        generation = self._begin(image_key)
        return await asyncio.to_thread(self._run, generation, image_key, frame)

    def close(self) -> None:
        """Tear the session down. In-flight requests are abandoned."""
        with self._lock:
            self._closed = True
            self._generation += 1
            self._image_key = None
            self._latest = None
        logger.debug("Redaction session closed")

    # --- Internals --------------------------------------------------------

    def _begin(self, image_key: Hashable) -> int:
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot submit to a closed RedactionSession.")
            self._generation += 1
            self._image_key = image_key
            generation = self._generation
        logger.debug("Request %d started for image %r", generation, image_key)
        return generation

    def _is_stale(self, generation: int) -> bool:
        with self._lock:
            return self._closed or generation != self._generation

    def _run(
        self,
        generation: int,
        image_key: Hashable,
        frame: np.ndarray,
    ) -> Optional[RedactionResult]:
        try:
            result = self._pipeline.redact(frame, should_cancel=lambda: self._is_stale(generation))
        except DetectionCancelled:
            logger.debug("Request %d for image %r superseded, abandoned", generation, image_key)
            return None

        with self._lock:
            if self._closed or generation != self._generation:
                logger.debug("Request %d for image %r finished stale, discarded", generation, image_key)
                return None
            self._latest = result
        return result
