"""Remote schedule fetching and payload parsing."""

from __future__ import annotations

import json

import requests
from loguru import logger

from owlcal.config import REQUEST_TIMEOUT, USER_AGENT
from owlcal.errors import MalformedPayloadError, TransientFetchError
from owlcal.schedule import detect_shape, iter_matches


def fetch_schedule(url: str, source: str = "schedule") -> bytes:
    """Download a schedule body. Raises TransientFetchError on any HTTP failure."""
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}

    logger.info("Fetching {} schedule from {}", source, url)
    try:
        response = requests.get(url, headers=headers, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise TransientFetchError(source, str(e)) from e
    return response.content


def parse_payload(raw: bytes, source: str = "schedule") -> dict:
    """Parse and shape-check a schedule body."""
    if not raw or not raw.strip():
        raise MalformedPayloadError(source, "empty schedule body")
    try:
        payload = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedPayloadError(source, f"invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedPayloadError(source, "schedule body is not a JSON object")

    detect_shape(payload, source)
    try:
        for _ in iter_matches(payload, source):
            pass
    except (AttributeError, TypeError, KeyError, ValueError) as e:
        raise MalformedPayloadError(source, f"bad match entry: {e}") from e
    return payload
