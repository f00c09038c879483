"""Feed assembly across all configured sources."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from owlcal import Match, MatchState
from owlcal.cache import Clock, SourceCacheManager, utcnow
from owlcal.config import MAX_CACHE_AGE, CalendarConfig
from owlcal.errors import FeedUnavailableError, MissingStartDateError, SourceError
from owlcal.filters import include_source, should_include
from owlcal.formatting import description, sequence_id, summary
from owlcal.options import FilterOptions
from owlcal.schedule import earliest_match_time, iter_sections


@dataclass(frozen=True)
class RenderedEvent:
    sequence_id: int
    summary: str
    description: str
    start: datetime
    end: datetime | None = None
    location: str | None = None


@dataclass(frozen=True)
class FeedRecord:
    """Everything the ICS writer needs for one feed."""

    name: str
    domain: str
    ttl_seconds: int
    events: tuple[RenderedEvent, ...]
    next_refresh_at: datetime | None = None
    failed_sources: tuple[str, ...] = ()


def render_event(options: FilterOptions, stage_name: str, match: Match) -> RenderedEvent:
    if match.start is None:
        raise MissingStartDateError(f"Match {match.id} in {stage_name!r} has no start date")
    comp1, comp2 = match.competitors
    return RenderedEvent(
        sequence_id=sequence_id(match, stage_name, options),
        summary=summary(options, stage_name, match, comp1, comp2),
        description=description(options, stage_name, match, comp1, comp2),
        start=match.start,
        end=match.end,
        location=match.tournament.location,
    )


def ttl_seconds(next_refresh_at: datetime | None, now: datetime) -> int:
    """Seconds until the feed should be re-read, never less than 1."""
    if next_refresh_at is None:
        return int(MAX_CACHE_AGE.total_seconds())
    return max(1, round((next_refresh_at - now).total_seconds()))


class CalendarBuilder:
    def __init__(self, config: CalendarConfig, cache: SourceCacheManager, clock: Clock = utcnow) -> None:
        self.config = config
        self.cache = cache
        self._clock = clock

    def build(self, options: FilterOptions) -> FeedRecord:
        """Render every included source's matches into one feed.

        Sources that fail to load are skipped; FeedUnavailableError is
        raised only when every included source failed.
        """
        now = self._clock()
        events: list[RenderedEvent] = []
        failed: list[str] = []
        refresh_hints: list[datetime] = []
        included = 0

        for source in self.config.sources:
            if not include_source(options, source):
                continue
            included += 1

            try:
                loaded = self.cache.ensure_fresh(source)
                sections = list(iter_sections(loaded.payload, source.name))
            except SourceError as e:
                logger.error("Skipping source {}: {}", source.name, e)
                failed.append(source.name)
                continue

            if not loaded.no_refresh and loaded.next_refresh_at is not None:
                refresh_hints.append(loaded.next_refresh_at)

            overdue: list[Match] = []
            for section in sections:
                for match in section.matches:
                    if match.state is MatchState.PENDING and match.end is not None and match.end < now:
                        overdue.append(match)
                    if not should_include(options, match, self.config.sources):
                        continue
                    events.append(render_event(options, section.name, match))

            due = earliest_match_time(overdue)
            if due is not None:
                logger.debug("{} has {} match(es) past their end time still pending", source.name, len(overdue))
                refresh_hints.append(due)

        if failed and len(failed) == included:
            raise FeedUnavailableError(f"No schedule available, failed sources: {', '.join(failed)}")

        next_refresh_at = min(refresh_hints) if refresh_hints else None
        return FeedRecord(
            name=self.config.name,
            domain=self.config.domain,
            ttl_seconds=ttl_seconds(next_refresh_at, now),
            events=tuple(events),
            next_refresh_at=next_refresh_at,
            failed_sources=tuple(failed),
        )
