"""Schedule payload shape detection and match timing.

Schedules come in two shapes: the regular season lists ``stages`` that each
hold ``matches``, while tournament formats list ``brackets``. Either may sit
under a top-level ``data`` object. Both are flattened into ordered
``Section`` records so nothing downstream needs to know which one it got.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator

from owlcal import Match, MatchState
from owlcal.config import MAX_CACHE_AGE
from owlcal.errors import UnrecognizedSchemaError


class ScheduleShape(str, Enum):
    STAGES = "stages"
    BRACKETS = "brackets"


@dataclass(frozen=True)
class Section:
    """A stage or bracket with its matches in payload order."""

    name: str
    matches: tuple[Match, ...]


def _schedule_root(payload: dict) -> dict:
    data = payload.get("data") if isinstance(payload, dict) else None
    if isinstance(data, dict):
        return data
    return payload if isinstance(payload, dict) else {}


def detect_shape(payload: dict, source: str = "schedule") -> ScheduleShape:
    """Work out which schedule layout a payload uses."""
    root = _schedule_root(payload)
    if isinstance(root.get(ScheduleShape.STAGES.value), list):
        return ScheduleShape.STAGES
    if isinstance(root.get(ScheduleShape.BRACKETS.value), list):
        return ScheduleShape.BRACKETS
    raise UnrecognizedSchemaError(source, "payload has neither 'stages' nor 'brackets'")


def _section_name(raw: dict) -> str:
    name = raw.get("name") or raw.get("title")
    if not name:
        stage = raw.get("stage") or {}
        name = stage.get("title") or stage.get("name")
    return name or ""


def iter_sections(payload: dict, source: str = "schedule") -> Iterator[Section]:
    shape = detect_shape(payload, source)
    for raw in _schedule_root(payload)[shape.value]:
        matches = tuple(Match.from_payload(m) for m in raw.get("matches") or [])
        yield Section(name=_section_name(raw), matches=matches)


def iter_matches(payload: dict, source: str = "schedule") -> Iterator[Match]:
    for section in iter_sections(payload, source):
        yield from section.matches


def pending_matches(payload: dict, source: str = "schedule") -> list[Match]:
    """All matches that have not concluded yet."""
    return [m for m in iter_matches(payload, source) if m.state is not MatchState.CONCLUDED]


def earliest_match_time(matches: Iterable[Match]) -> datetime | None:
    """Earliest completion time among matches, or None if none have one."""
    end_times = [m.end for m in matches if m.end is not None]
    return min(end_times) if end_times else None


def next_refresh_time(payload: dict, modified_at: datetime, source: str = "schedule") -> datetime:
    """When a cached payload written at ``modified_at`` should be refetched.

    The cache file expires MAX_CACHE_AGE after it was written, but if a
    match still pending in it is due to finish before then, refresh as soon
    as that match should be over.
    """
    deadline = modified_at + MAX_CACHE_AGE
    next_finish = earliest_match_time(pending_matches(payload, source))
    if next_finish is not None and next_finish < deadline:
        return next_finish
    return deadline
