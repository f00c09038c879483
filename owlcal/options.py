"""Per-request feed options parsed from query parameters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping
from urllib.parse import parse_qsl, urlsplit


class SummaryFormat(str, Enum):
    REGULAR = "regular"
    DETAILED = "detailed"


SCORES_SHOWN = ("show", "true")


@dataclass(frozen=True)
class FilterOptions:
    format: SummaryFormat = SummaryFormat.REGULAR
    show_scores: bool = False
    teams: frozenset[str] | None = None
    leagues: frozenset[str] | None = None
    regions: frozenset[str] | None = None

    def show_all_teams(self) -> bool:
        return self.teams is None

    def show_detailed_summary(self) -> bool:
        return self.format is SummaryFormat.DETAILED

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "FilterOptions":
        """Build options from ``teams``, ``leagues``, ``regions``, ``format`` and ``scores``."""
        fmt = params.get("format", "").strip().lower()
        scores = params.get("scores", "").strip().lower()
        return cls(
            format=SummaryFormat.DETAILED if fmt == SummaryFormat.DETAILED.value else SummaryFormat.REGULAR,
            show_scores=scores in SCORES_SHOWN,
            teams=_split_list(params.get("teams")),
            leagues=_split_list(params.get("leagues")),
            regions=_split_list(params.get("regions")),
        )


def _split_list(value: str | None) -> frozenset[str] | None:
    if not value:
        return None
    items = frozenset(item.strip() for item in value.split(",") if item.strip())
    return items or None


def parse_query_string(url: str) -> dict[str, str]:
    """Extract query parameters from a request URL or a bare query string."""
    query = urlsplit(url).query if "?" in url or "://" in url else url
    return dict(parse_qsl(query, keep_blank_values=True))
