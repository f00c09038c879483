"""Event summary, description and sequence rendering."""

from __future__ import annotations

import hashlib

from owlcal import TBA, Competitor, Match
from owlcal.options import FilterOptions

LEAGUE_PREFIX = "OWL"
PLAYOFFS = "PLAYOFFS"

# Keeps derived ids within the ICS INTEGER range
SEQUENCE_HASH_DIGITS = 7


def _name(competitor: Competitor | None) -> str:
    return competitor.name if competitor is not None else TBA


def _abbreviation(competitor: Competitor | None) -> str:
    if competitor is None or not competitor.abbreviated_name:
        return TBA
    return competitor.abbreviated_name


def _score(match: Match, index: int) -> str:
    return match.scores[index] if index < len(match.scores) else "?"


def _stage_title(stage_name: str, match: Match) -> str:
    if match.tournament.type == PLAYOFFS:
        return f"{stage_name} Playoffs"
    return stage_name


def _shows_result(options: FilterOptions, match: Match) -> bool:
    return options.show_scores and match.is_concluded


def summary(
    options: FilterOptions,
    stage_name: str,
    match: Match,
    comp1: Competitor | None,
    comp2: Competitor | None,
) -> str:
    """One-line event title; concluded matches list the winner first when scores are shown."""
    score1 = score2 = ""
    if _shows_result(options, match):
        first, second = 0, 1
        winner = match.winner_abbreviation
        if comp2 is not None and winner is not None and winner == comp2.abbreviated_name:
            comp1, comp2 = comp2, comp1
            first, second = 1, 0
        score1 = f" [{_score(match, first)}]"
        score2 = f" [{_score(match, second)}]"
        separator = " d "
    elif options.show_detailed_summary():
        separator = " vs "
    else:
        separator = " v "

    if options.show_detailed_summary():
        return (
            f"{_stage_title(stage_name, match)} - "
            f"{_name(comp1)}{score1}{separator}{_name(comp2)}{score2}"
        )
    return f"{LEAGUE_PREFIX} {_abbreviation(comp1)}{score1}{separator}{_abbreviation(comp2)}{score2}"


def description(
    options: FilterOptions,
    stage_name: str,
    match: Match,
    comp1: Competitor | None,
    comp2: Competitor | None,
) -> str:
    text = f"{_stage_title(stage_name, match)} - {_name(comp1)} vs {_name(comp2)}"
    if _shows_result(options, match):
        for index, competitor in enumerate((comp1, comp2)):
            points = " ".join(str(game[index]) for game in match.games if index < len(game))
            text += f"\n{_name(competitor)}: {points} [{_score(match, index)}]"
    return text


def sequence_id(match: Match, stage_name: str, options: FilterOptions) -> int:
    """Stable event sequence number.

    Uses the payload's match id when there is one. Otherwise the id is
    derived from the start day and the rendered summary, so the same match
    gets the same number on every build.
    """
    if match.id is not None:
        return int(match.id)
    comp1, comp2 = match.competitors
    day = str(match.start.day) if match.start is not None else ""
    text = day + summary(options, stage_name, match, comp1, comp2)
    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()
    return int(digest[:SEQUENCE_HASH_DIGITS], 16)
