"""Per-source schedule caching with adaptive expiry.

Each configured source is backed by one JSON file holding the last body
fetched for it. ``SourceCacheManager`` decides per call whether the copy in
memory is still good, whether the file on disk can be used, or whether the
source has to be fetched again. Fetches for one source are coalesced: while
one is running every other caller waits on the same future.
"""

from __future__ import annotations

import os
import tempfile
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import partial
from pathlib import Path
from typing import Callable

from loguru import logger

from owlcal import SourceDescriptor
from owlcal.config import MAX_CACHE_AGE, MIN_FETCH_INTERVAL
from owlcal.errors import MalformedPayloadError, SourceError, UnrecognizedSchemaError
from owlcal.fetcher import fetch_schedule, parse_payload
from owlcal.schedule import next_refresh_time

Fetcher = Callable[[str, str], bytes]
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def save_to_cache(path: Path, data: bytes) -> None:
    """Atomically replace a cache file with ``data``.

    Readers see either the old file or the new one, never a partial write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def load_cached_schedule(path: Path) -> tuple[bytes, datetime] | None:
    """Read a cache file and its modification time. Returns None if missing."""
    try:
        data = path.read_bytes()
        mtime = path.stat().st_mtime
    except FileNotFoundError:
        return None
    return data, datetime.fromtimestamp(mtime, tz=timezone.utc)


@dataclass(frozen=True)
class LoadedSource:
    """A parsed schedule held in memory for one source."""

    source: SourceDescriptor
    payload: dict
    loaded_at: datetime
    modified_at: datetime
    next_refresh_at: datetime | None = None

    @property
    def no_refresh(self) -> bool:
        return self.source.final


class SourceCacheManager:
    def __init__(
        self,
        fetcher: Fetcher = fetch_schedule,
        clock: Clock = utcnow,
        min_fetch_interval: timedelta = MIN_FETCH_INTERVAL,
        max_workers: int = 4,
    ) -> None:
        self._fetcher = fetcher
        self._clock = clock
        self._min_fetch_interval = min_fetch_interval
        self._loaded: dict[str, LoadedSource] = {}
        self._inflight: dict[str, Future] = {}
        self._last_attempt: dict[str, datetime] = {}
        # Re-entrant: a done callback may run in the thread holding it
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="owlcal-fetch")

    def __enter__(self) -> "SourceCacheManager":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def loaded(self, name: str) -> LoadedSource | None:
        return self._loaded.get(name)

    def invalidate(self, name: str) -> None:
        """Forget the in-memory copy of a source; the cache file is kept."""
        with self._lock:
            self._loaded.pop(name, None)
            self._last_attempt.pop(name, None)

    def is_stale(self, loaded: LoadedSource, now: datetime | None = None) -> bool:
        if loaded.no_refresh:
            return False
        now = now or self._clock()
        if loaded.next_refresh_at is not None and now > loaded.next_refresh_at:
            return True
        return now - loaded.modified_at > MAX_CACHE_AGE

    def ensure_fresh(self, source: SourceDescriptor) -> LoadedSource:
        """Return a usable schedule for ``source``, loading or refetching it as needed.

        Raises a SourceError subclass only when nothing was ever loaded for
        the source; later failures keep serving the previous schedule.
        """
        current = self._loaded.get(source.name)
        if current is not None:
            if current.no_refresh:
                return current
            now = self._clock()
            if not self.is_stale(current, now):
                return current
            last_attempt = self._last_attempt.get(source.name)
            if last_attempt is not None and now - last_attempt < self._min_fetch_interval:
                logger.debug("{} is stale but was tried at {}, not refetching yet", source.name, last_attempt)
                return current

        with self._lock:
            latest = self._loaded.get(source.name)
            if latest is not None and latest is not current and not self.is_stale(latest):
                return latest
            future = self._inflight.get(source.name)
            if future is None:
                future = self._executor.submit(self._load, source)
                self._inflight[source.name] = future
                future.add_done_callback(partial(self._forget_inflight, source.name))
            else:
                logger.debug("Waiting on in-flight fetch for {}", source.name)
        # Abandoning this wait leaves the fetch running for later callers
        return future.result()

    def _forget_inflight(self, name: str, future: Future) -> None:
        with self._lock:
            if self._inflight.get(name) is future:
                del self._inflight[name]

    def _register(self, loaded: LoadedSource) -> LoadedSource:
        with self._lock:
            self._loaded[loaded.source.name] = loaded
        return loaded

    def _load(self, source: SourceDescriptor) -> LoadedSource:
        previous = self._loaded.get(source.name)

        if previous is None:
            try:
                from_disk = self._read_cache(source)
            except (MalformedPayloadError, UnrecognizedSchemaError) as e:
                logger.warning("Ignoring unusable cache file for {}: {}", source.name, e)
                from_disk = None

            if from_disk is not None:
                self._register(from_disk)
                if not self.is_stale(from_disk):
                    logger.info("Loaded {} schedule from {}", source.name, source.cache_path)
                    return from_disk
                logger.info("Cached {} schedule expired, refreshing", source.name)
                previous = from_disk

        return self._fetch_and_store(source, previous)

    def _read_cache(self, source: SourceDescriptor) -> LoadedSource | None:
        try:
            cached = load_cached_schedule(source.cache_path)
        except OSError as e:
            raise MalformedPayloadError(source.name, f"cannot read {source.cache_path}: {e}") from e
        if cached is None:
            return None

        raw, modified_at = cached
        payload = parse_payload(raw, source.name)
        return LoadedSource(
            source=source,
            payload=payload,
            loaded_at=self._clock(),
            modified_at=modified_at,
            next_refresh_at=next_refresh_time(payload, modified_at, source.name),
        )

    def _fetch_and_store(self, source: SourceDescriptor, previous: LoadedSource | None) -> LoadedSource:
        now = self._clock()
        self._last_attempt[source.name] = now
        try:
            raw = self._fetcher(source.url, source.name)
            payload = parse_payload(raw, source.name)
        except SourceError as e:
            if previous is None:
                logger.error("Could not load {} and no cached copy exists: {}", source.name, e)
                raise
            logger.warning(
                "Refresh of {} failed, keeping schedule loaded at {}: {}",
                source.name, previous.loaded_at.isoformat(), e,
            )
            return previous

        try:
            save_to_cache(source.cache_path, raw)
        except OSError as e:
            logger.error("Could not write cache file {}: {}", source.cache_path, e)

        loaded = LoadedSource(
            source=source,
            payload=payload,
            loaded_at=now,
            modified_at=now,
            next_refresh_at=next_refresh_time(payload, now, source.name),
        )
        logger.info(
            "Fetched {} schedule, next refresh at {}",
            source.name, loaded.next_refresh_at.isoformat(),
        )
        return self._register(loaded)
