"""Reconstitute a Rating from a transaction's tags and payload body.

Tags come back with the index hit; the payload needs a second request that
may fail, be slow, or return something that is not JSON.  Reconciliation is
therefore tag-first:

    - For every field carried both as a tag and as a payload key, a
      non-empty tag value wins and the payload is only a fallback.
    - ``comments`` exists only in the payload and is ``None`` when the
      payload is unavailable.
    - ``score`` is the tag parsed as an integer, else the payload's number,
      else 0 (shown as unknown).
    - ``timestamp`` is the ``Unix-Time`` tag, else the payload's
      ``timestamp``, else the block timestamp, else 0.

A missing or malformed payload never fails the record; the resulting view is
marked partial instead.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from rate_anybody.rating import Rating, coerce_int
from rate_anybody.tags import (
    ASSOCIATIONS,
    FIRST_NAME,
    LAST_NAME,
    LOCATION,
    MIDDLE_NAME,
    RATER_ADDRESS,
    RATING_SCORE,
    UNIX_TIME,
    TagSet,
)

# Tag names per field, in precedence order.  The ``Person-*`` names were used
# by early relay uploads.
_TEXT_FIELDS: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("first_name", (FIRST_NAME, "Person-First-Name"), "firstName"),
    ("middle_name", (MIDDLE_NAME, "Person-Middle-Name"), "middleName"),
    ("last_name", (LAST_NAME, "Person-Last-Name"), "lastName"),
    ("location", (LOCATION, "Person-Location"), "location"),
    ("associations", (ASSOCIATIONS, "Person-Associations"), "associations"),
)


@dataclass(frozen=True)
class RatingView:
    """
    A reconciled rating ready for display.

    Attributes:
        rating: The reconciled record.
        partial: True when the payload could not be fetched or parsed and
            the record was built from tags alone.
        problem: Why the payload is missing, when ``partial``.
    """

    rating: Rating
    partial: bool = False
    problem: str | None = None

    @property
    def transaction_id(self) -> str | None:
        return self.rating.transaction_id


def parse_payload(raw: bytes | str | None) -> dict[str, Any] | None:
    """Decode a payload body, returning ``None`` unless it is a JSON object."""
    if raw is None:
        return None
    try:
        decoded = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return decoded if isinstance(decoded, dict) else None


def _first_tag(tags: TagSet, names: Iterable[str]) -> str:
    for name in names:
        value = (tags.get(name) or "").strip()
        if value:
            return value
    return ""


def _text_field(tags: TagSet, names: Iterable[str], payload: Mapping[str, Any], key: str) -> str:
    tag_value = _first_tag(tags, names)
    if tag_value:
        return tag_value
    fallback = payload.get(key)
    return fallback.strip() if isinstance(fallback, str) else ""


def _score_field(tags: TagSet, payload: Mapping[str, Any]) -> int:
    tag_score = coerce_int(tags.get(RATING_SCORE))
    if tag_score is not None:
        return tag_score
    payload_score = coerce_int(payload.get("score"))
    return payload_score if payload_score is not None else 0


def _timestamp_field(
    tags: TagSet, payload: Mapping[str, Any], block_timestamp: int | None
) -> int:
    for candidate in (tags.get(UNIX_TIME), payload.get("timestamp"), block_timestamp):
        value = coerce_int(candidate)
        if value is not None:
            return value
    return 0


def reconcile(
    transaction_id: str,
    tags: TagSet,
    payload: Mapping[str, Any] | None,
    block_timestamp: int | None = None,
) -> Rating:
    """Merge tags and a decoded payload into one Rating.

    Args:
        transaction_id: The ledger id, which becomes the rating's identity.
        tags: The transaction's tags.
        payload: The decoded payload object, or ``None`` if unavailable.
        block_timestamp: The mining block's timestamp, used only when neither
            tags nor payload carry a time.
    """
    body: Mapping[str, Any] = payload if payload is not None else {}
    fields: dict[str, Any] = {
        attr: _text_field(tags, names, body, key) for attr, names, key in _TEXT_FIELDS
    }
    comments = body.get("comments") if payload is not None else None
    if payload is not None and not isinstance(comments, str):
        comments = "" if comments is None else str(comments)

    return Rating(
        **fields,
        score=_score_field(tags, body),
        comments=comments,
        timestamp=_timestamp_field(tags, body, block_timestamp),
        rater_address=_first_tag(tags, (RATER_ADDRESS,)),
        transaction_id=transaction_id,
    )


def reconcile_view(
    transaction_id: str,
    tags: TagSet,
    raw_payload: bytes | str | None,
    block_timestamp: int | None = None,
    problem: str | None = None,
) -> RatingView:
    """Reconcile a raw payload body, marking the view partial if unusable.

    Args:
        raw_payload: The fetched body, or ``None`` when the fetch failed.
        problem: The fetch failure, if any, recorded on the view.
    """
    payload = parse_payload(raw_payload)
    if payload is None and problem is None:
        problem = "payload missing" if raw_payload is None else "payload is not a JSON object"
    rating = reconcile(transaction_id, tags, payload, block_timestamp)
    if payload is not None:
        return RatingView(rating=rating)
    return RatingView(rating=rating, partial=True, problem=problem)


def sort_ratings(views: Iterable[RatingView]) -> list[RatingView]:
    """Order views most recent first; records without a time sort last."""
    return sorted(views, key=lambda view: view.rating.timestamp, reverse=True)
