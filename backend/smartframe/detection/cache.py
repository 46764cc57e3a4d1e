"""Batch-consistency cache for focal points."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import Future

from ..config import Config
from ..models import FocalPoint

logger = logging.getLogger("smartframe.detection.cache")

_BATCH_PREFIX = "batch"


def new_batch_id() -> str:
    """Create a batch identifier that embeds its creation time."""
    return f"{_BATCH_PREFIX}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def batch_created_at(batch_id: str) -> float | None:
    """Creation time (epoch seconds) encoded in ``batch_id``, if any."""
    parts = batch_id.split("-")
    if len(parts) != 3 or parts[0] != _BATCH_PREFIX:
        return None
    try:
        return int(parts[1]) / 1000.0
    except ValueError:
        return None


class FocalPointCache:
    """Insert-if-absent map of batch id -> FocalPoint with age-based expiry.

    The first image of a batch commits its focal point; later images read
    it back unchanged. ``get_or_compute`` lets concurrent callers of the
    same batch wait for the first computation instead of racing it.

    Usage:
        with FocalPointCache() as cache:          # starts the sweeper
            fp = cache.get_or_compute(batch_id, lambda: scanner.scan(...))
    """

    def __init__(
        self,
        ttl_seconds: float = Config.BATCH_CACHE_TTL,
        sweep_interval: float = Config.BATCH_CACHE_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[FocalPoint, float]] = {}
        self._pending: dict[str, Future] = {}
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, batch_id: str) -> bool:
        return self.get(batch_id) is not None

    def get(self, batch_id: str) -> FocalPoint | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(batch_id)
            if entry is None:
                return None
            if now - entry[1] > self.ttl_seconds:
                del self._entries[batch_id]
                return None
        return entry[0]

    def put_if_absent(self, batch_id: str, focal_point: FocalPoint) -> FocalPoint:
        """Store ``focal_point`` unless the batch already has one; return the stored value.

        Expired entries are dropped before inserting, so the map stays
        bounded even when the sweeper is not running.
        """
        now = self._clock()
        with self._lock:
            existing = self._entries.get(batch_id)
            if existing is not None and now - existing[1] <= self.ttl_seconds:
                return existing[0]
            purged = self._purge_locked(now)
            self._entries[batch_id] = (focal_point, now)
        if purged:
            logger.debug("Dropped %d expired batch entries", purged)
        logger.debug("Cached focal point for %s: (%d, %d)", batch_id, focal_point.x, focal_point.y)
        return focal_point

    def get_or_compute(self, batch_id: str, compute: Callable[[], FocalPoint]) -> FocalPoint:
        """Return the batch's focal point, computing it at most once.

        Callers arriving while another thread computes the same batch
        block on that computation's future.
        """
        cached = self.get(batch_id)
        if cached is not None:
            return cached

        with self._lock:
            future = self._pending.get(batch_id)
            owner = future is None
            if owner:
                future = Future()
                self._pending[batch_id] = future

        if not owner:
            return future.result()

        try:
            focal_point = self.put_if_absent(batch_id, compute())
            future.set_result(focal_point)
            return focal_point
        except BaseException as e:
            future.set_exception(e)
            raise
        finally:
            with self._lock:
                self._pending.pop(batch_id, None)

    def purge_expired(self, now: float | None = None) -> int:
        """Drop entries older than the TTL. Returns how many were removed."""
        now = self._clock() if now is None else now
        with self._lock:
            purged = self._purge_locked(now)
        if purged:
            logger.info("Purged %d expired batch entries", purged)
        return purged

    def _is_expired(self, batch_id: str, created: float, now: float) -> bool:
        if now - created > self.ttl_seconds:
            return True
        encoded = batch_created_at(batch_id)
        return encoded is not None and now - encoded > self.ttl_seconds

    def _purge_locked(self, now: float) -> int:
        expired = [
            batch_id for batch_id, (_, created) in self._entries.items()
            if self._is_expired(batch_id, created, now)
        ]
        for batch_id in expired:
            del self._entries[batch_id]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    # Background sweeper

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def start_sweeper(self) -> None:
        if self.sweeper_running:
            return
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="focal-point-cache-sweeper", daemon=True
        )
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=self.sweep_interval + 1)
            self._sweeper = None

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            try:
                self.purge_expired()
            except Exception as e:
                logger.warning("Cache sweep failed: %s", e)

    def __enter__(self) -> FocalPointCache:
        self.start_sweeper()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop_sweeper()
