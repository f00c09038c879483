"""Shared fixtures: schedule payloads, a fake fetcher and a settable clock."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from owlcal import SourceDescriptor
from owlcal.errors import TransientFetchError

FIXTURE_DIR = Path(__file__).parent / "fixtures"

OWL_URL = "https://api.example.test/owl"
CONTENDERS_URL = "https://api.example.test/contenders"

# Just before the first pending fixture match (2030-01-01 00:00-02:00 UTC)
NOW = datetime(2029, 12, 31, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeFetcher:
    """Serves canned bodies by URL and counts calls."""

    def __init__(self, bodies: dict[str, bytes | Exception]) -> None:
        self.bodies = dict(bodies)
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, url: str, source: str = "schedule") -> bytes:
        with self._lock:
            self.calls.append(url)
        body = self.bodies.get(url)
        if body is None:
            raise TransientFetchError(source, f"404 for {url}")
        if isinstance(body, Exception):
            raise body
        return body


@pytest.fixture
def schedule_bytes() -> bytes:
    return (FIXTURE_DIR / "owl_schedule.json").read_bytes()


@pytest.fixture
def brackets_bytes() -> bytes:
    return (FIXTURE_DIR / "contenders_brackets.json").read_bytes()


@pytest.fixture
def schedule_payload(schedule_bytes: bytes) -> dict:
    return json.loads(schedule_bytes)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def owl_source(tmp_path: Path) -> SourceDescriptor:
    return SourceDescriptor(
        name="owl",
        url=OWL_URL,
        cache_path=tmp_path / "cache" / "owl.json",
        tag="owl",
    )


@pytest.fixture
def contenders_source(tmp_path: Path) -> SourceDescriptor:
    return SourceDescriptor(
        name="contenders",
        url=CONTENDERS_URL,
        cache_path=tmp_path / "cache" / "contenders.json",
        tag="contenders",
        default=False,
        regions={"North America": "19", "NA": "19", "Europe": "20", "EU": "20"},
    )
