"""Source configuration loading and timing constants."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from owlcal import SourceDescriptor
from owlcal.errors import ConfigError

USER_AGENT = "OwlCalendarBot/1.0 (calendar feed)"
REQUEST_TIMEOUT = 30  # seconds

# Cache files older than this are always refetched
MAX_CACHE_AGE = timedelta(hours=12)
# Minimum gap between two fetch attempts for the same source
MIN_FETCH_INTERVAL = timedelta(seconds=60)

DEFAULT_NAME = "Overwatch League"
DEFAULT_DOMAIN = "owl.tjsr.id.au"


@dataclass(frozen=True)
class CalendarConfig:
    name: str
    domain: str
    sources: tuple[SourceDescriptor, ...]


def load_config(path: str | Path = "sources.json") -> CalendarConfig:
    """Load feed settings and source definitions from a JSON file."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    sources = parse_sources(data.get("sources", []), base_dir=path.parent)
    return CalendarConfig(
        name=data.get("name", DEFAULT_NAME),
        domain=data.get("domain", DEFAULT_DOMAIN),
        sources=sources,
    )


def parse_sources(entries: list[dict], base_dir: Path = Path(".")) -> tuple[SourceDescriptor, ...]:
    """Convert raw source entries into descriptors, in configured order."""
    sources: list[SourceDescriptor] = []
    seen: set[str] = set()
    for entry in entries:
        try:
            name = entry["name"]
            url = entry["url"]
        except KeyError as e:
            raise ConfigError(f"Source entry missing {e}: {entry}") from e
        if name in seen:
            raise ConfigError(f"Duplicate source name: {name}")
        seen.add(name)

        cache_path = Path(entry.get("cache_path", f"cache/{name}.json"))
        if not cache_path.is_absolute():
            cache_path = base_dir / cache_path

        sources.append(SourceDescriptor(
            name=name,
            url=url,
            cache_path=cache_path,
            tag=entry.get("tag", name),
            default=bool(entry.get("default", True)),
            final=bool(entry.get("final", False)),
            regions={str(k): str(v) for k, v in (entry.get("regions") or {}).items()},
        ))
    return tuple(sources)
