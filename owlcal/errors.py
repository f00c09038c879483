"""Exceptions raised while loading schedules and building feeds."""

from __future__ import annotations


class OwlCalendarError(Exception):
    """Base class for calendar errors."""


class ConfigError(OwlCalendarError):
    pass


class SourceError(OwlCalendarError):
    """An error attributable to a single configured source."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class TransientFetchError(SourceError):
    """Network or HTTP failure while fetching a schedule."""


class MalformedPayloadError(SourceError):
    """Schedule body or cache file is empty or not valid JSON."""


class UnrecognizedSchemaError(SourceError):
    """Schedule has neither ``stages`` nor ``brackets``."""


class MissingStartDateError(OwlCalendarError):
    pass


class FeedUnavailableError(OwlCalendarError):
    """No configured source could be loaded."""
