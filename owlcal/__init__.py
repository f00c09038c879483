"""OWL Calendar — shared data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

TBA = "TBA"


class MatchState(str, Enum):
    PENDING = "PENDING"
    OPEN = "OPEN"
    CONCLUDED = "CONCLUDED"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, value: Any) -> "MatchState":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class SourceDescriptor:
    """A named remote schedule and the file it is cached in."""

    name: str
    url: str
    cache_path: Path
    tag: str
    default: bool = True
    final: bool = False
    regions: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Competitor:
    name: str
    abbreviated_name: str | None = None

    @classmethod
    def from_payload(cls, data: dict | None) -> "Competitor | None":
        if not data:
            return None
        abbr = data.get("abbreviatedName")
        if not abbr:
            # expand=team.content nests the team details
            abbr = (data.get("content") or {}).get("abbreviatedName")
        return cls(name=data.get("name") or abbr or TBA, abbreviated_name=abbr)


@dataclass(frozen=True)
class Tournament:
    id: str | None = None
    type: str | None = None
    location: str | None = None


@dataclass(frozen=True)
class Match:
    """A single scheduled match, read from a schedule payload."""

    start: datetime | None
    end: datetime | None
    competitors: tuple[Competitor | None, Competitor | None] = (None, None)
    tournament: Tournament = field(default_factory=Tournament)
    state: MatchState = MatchState.PENDING
    scores: tuple[str, ...] = ()
    winner_abbreviation: str | None = None
    games: tuple[tuple[Any, ...], ...] = ()
    id: int | None = None

    @property
    def is_concluded(self) -> bool:
        return self.state is MatchState.CONCLUDED

    @classmethod
    def from_payload(cls, data: dict) -> "Match":
        raw_competitors = list(data.get("competitors") or [])
        if len(raw_competitors) < 2:
            logger.debug("Match {} has {} competitor(s), padding with TBA", data.get("id"), len(raw_competitors))
            raw_competitors += [None] * (2 - len(raw_competitors))
        comp1, comp2 = (Competitor.from_payload(c) for c in raw_competitors[:2])

        tournament = data.get("tournament") or {}
        winner = data.get("winner") or {}
        match_id = data.get("id")

        return cls(
            id=int(match_id) if str(match_id).isdigit() else None,
            start=_parse_time(data.get("startDateTS", data.get("startDate"))),
            end=_parse_time(data.get("endDateTS", data.get("endDate"))),
            competitors=(comp1, comp2),
            tournament=Tournament(
                id=str(tournament["id"]) if tournament.get("id") is not None else None,
                type=tournament.get("type"),
                location=tournament.get("location"),
            ),
            state=MatchState.parse(data.get("state")),
            scores=tuple(str(s.get("value", "")) for s in data.get("scores") or []),
            winner_abbreviation=data.get("winnerAbbreviation") or winner.get("abbreviatedName"),
            games=tuple(tuple(g.get("points") or ()) for g in data.get("games") or []),
        )


def _parse_time(value: Any) -> datetime | None:
    """Parse epoch milliseconds or an ISO-8601 string into a UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    text = str(value)
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable match time {!r}", text)
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
