"""Conditional request evaluation (RFC 7232) for artifact downloads."""

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime

NOT_MODIFIED = 304
PRECONDITION_FAILED = 412

MATCH_ANY = "*"

_ENTITY_TAG = re.compile(r'\s*(W/)?"([^"]*)"\s*')


def format_etag(etag: str) -> str:
    """Quote a raw store etag as a strong entity-tag."""
    if etag.startswith('"') or etag.startswith('W/"'):
        return etag
    return f'"{etag}"'


def format_http_date(value: datetime) -> str:
    """Format a timestamp as an RFC 7231 HTTP-date."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an HTTP-date header. Invalid or empty values yield None."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_entity_tags(value: str | None) -> set[str] | None:
    """Parse an If-Match/If-None-Match header into opaque tag values.

    Returns None when the header is absent or empty, {"*"} for a wildcard.
    Unquoted tags are accepted as-is.
    """
    if value is None or not value.strip():
        return None
    tags: set[str] = set()
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if part == MATCH_ANY:
            tags.add(MATCH_ANY)
            continue
        match = _ENTITY_TAG.fullmatch(part)
        tags.add(match.group(2) if match else part)
    return tags


def _opaque(etag: str) -> str:
    match = _ENTITY_TAG.fullmatch(etag)
    return match.group(2) if match else etag


def _seconds(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def evaluate_preconditions(
    headers: Mapping[str, str],
    etag: str | None,
    last_modified: datetime | None,
) -> int | None:
    """Evaluate conditional GET headers against the current representation.

    Entity-tag conditions take precedence over their date counterparts:
    If-Unmodified-Since is consulted only without If-Match, and
    If-Modified-Since only without If-None-Match.

    Args:
        headers: Request headers (case-insensitive mapping)
        etag: Entity-tag of the current representation, quoted or raw
        last_modified: Last modification time, if known

    Returns:
        304 or 412 when the request short-circuits, None to send the body
    """
    current = _opaque(etag) if etag is not None else None

    if_match = parse_entity_tags(headers.get("if-match"))
    if if_match is not None:
        if current is None or etag.startswith("W/"):
            return PRECONDITION_FAILED
        if MATCH_ANY not in if_match and current not in if_match:
            return PRECONDITION_FAILED
    elif last_modified is not None:
        if_unmodified_since = parse_http_date(headers.get("if-unmodified-since"))
        if if_unmodified_since is not None and _seconds(last_modified) > _seconds(if_unmodified_since):
            return PRECONDITION_FAILED

    if_none_match = parse_entity_tags(headers.get("if-none-match"))
    if if_none_match is not None:
        if MATCH_ANY in if_none_match or (current is not None and current in if_none_match):
            return NOT_MODIFIED
        return None

    since = parse_http_date(headers.get("if-modified-since"))
    if since is not None and last_modified is not None and _seconds(last_modified) <= _seconds(since):
        return NOT_MODIFIED
    return None
