"""Human-readable vehicle slugs: "<slugified-nickname>-<first 6 chars of id>"."""

from __future__ import annotations

import re
from collections.abc import Iterable

from .const import SLUG_FALLBACK, SLUG_PARTIAL_ID_LENGTH
from .models import VehicleRecord

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def slugify_nickname(name: str) -> str:
    """Lowercase, collapse every non-alphanumeric run to one hyphen, trim hyphens."""
    return _NON_ALPHANUMERIC.sub("-", name.lower()).strip("-")


def generate_slug(nickname: str, vehicle_id: str) -> str:
    clean = slugify_nickname(nickname) or SLUG_FALLBACK
    return f"{clean}-{vehicle_id[:SLUG_PARTIAL_ID_LENGTH]}"


def parse_slug(slug: str) -> tuple[str, str] | None:
    """Split a slug into (nickname part, partial id).

    Returns None when the trailing id segment is missing or too short.
    """
    nickname, separator, partial_id = slug.rpartition("-")
    if not separator or len(partial_id) < SLUG_PARTIAL_ID_LENGTH:
        return None
    return nickname, partial_id


def resolve_slug(records: Iterable[VehicleRecord], slug: str) -> VehicleRecord | None:
    """Find the record a slug points at.

    Candidates are records whose id starts with the partial id. With more
    than one, the record whose slugified nickname matches wins, else the
    first candidate.
    """
    parsed = parse_slug(slug)
    if parsed is None:
        return None
    nickname, partial_id = parsed

    candidates = [r for r in records if r.id.startswith(partial_id)]
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    for record in candidates:
        if slugify_nickname(record.nickname) == nickname:
            return record
    return candidates[0]
