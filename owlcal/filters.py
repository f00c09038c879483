"""Match and source inclusion rules."""

from __future__ import annotations

from typing import Iterable

from owlcal import Match, SourceDescriptor
from owlcal.options import FilterOptions


def include_source(options: FilterOptions, source: SourceDescriptor) -> bool:
    """Whether a source's league is part of the requested feed."""
    if options.leagues is None:
        return source.default
    return source.tag in options.leagues


def resolve_region_tournaments(regions: Iterable[str], sources: Iterable[SourceDescriptor]) -> set[str]:
    """Tournament ids that any of ``regions`` maps to, across every source."""
    wanted = set(regions)
    tournament_ids: set[str] = set()
    for source in sources:
        for region, tournament_id in source.regions.items():
            if region in wanted:
                tournament_ids.add(str(tournament_id))
    return tournament_ids


def should_include(
    options: FilterOptions,
    match: Match,
    sources: Iterable[SourceDescriptor] = (),
) -> bool:
    if match.start is None:
        return False

    if options.teams is not None:
        abbreviations = {c.abbreviated_name for c in match.competitors if c is not None}
        if not abbreviations & options.teams:
            return False

    if options.regions is not None:
        tournament_id = match.tournament.id
        if tournament_id is None:
            return False
        if tournament_id not in resolve_region_tournaments(options.regions, sources):
            return False

    return True
