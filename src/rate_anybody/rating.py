"""The Rating record and its JSON payload form.

A rating is the only domain entity.  It is built client-side, serialized to a
compact JSON payload (the transaction body) and, separately, projected onto a
set of ledger tags by :mod:`rate_anybody.tags`.  Once submitted it is
immutable: the ledger is append-only and the transaction id is its identity.

Payload keys keep the camelCase names used by every existing rating on the
ledger (``firstName``, ``middleName``, ``lastName``, ``location``,
``associations``, ``score``, ``comments``, ``timestamp``).  Empty optional
fields are written as ``""`` in the payload even though they are never tagged.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from rate_anybody.errors import ValidationError

logger = logging.getLogger(__name__)

# Payload key for each string field, in serialization order.
_TEXT_FIELDS = (
    ("first_name", "firstName"),
    ("middle_name", "middleName"),
    ("last_name", "lastName"),
    ("location", "location"),
    ("associations", "associations"),
)


def _clean(value: Any) -> str:
    """Coerce an optional text value to a trimmed string."""
    if value is None:
        return ""
    return str(value).strip()


def coerce_int(value: Any) -> int | None:
    """Parse an integer from a payload or tag value.

    Accepts ints and decimal strings (surrounding whitespace allowed).
    Booleans, floats with a fractional part and anything else return ``None``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    return None


@dataclass(frozen=True)
class ScoreRule:
    """Score range check applied at submission.

    The intended range is 0-10, but historically nothing enforced it.  With
    ``enforce=False`` an out-of-range score is accepted and logged; with
    ``enforce=True`` it is rejected as a validation failure.
    """

    minimum: int = 0
    maximum: int = 10
    enforce: bool = False

    def check(self, score: int) -> bool:
        """Return True if ``score`` is within range.

        Raises:
            ValidationError: If the score is out of range and ``enforce`` is set.
        """
        if self.minimum <= score <= self.maximum:
            return True
        if self.enforce:
            raise ValidationError(
                f"Score {score} is outside the allowed range {self.minimum}-{self.maximum}"
            )
        logger.warning(
            "Score %d is outside the intended range %d-%d; accepting",
            score,
            self.minimum,
            self.maximum,
        )
        return False


@dataclass(frozen=True)
class Rating:
    """
    A single rating of a person.

    Attributes:
        first_name: Given name (trimmed, may be empty).
        middle_name: Middle name (trimmed, may be empty).
        last_name: Family name (trimmed, may be empty).
        location: Free-text location.
        associations: Free-text associations (employers, groups).
        score: Integer score, intended range 0-10.
        comments: Free-text comments.  Carried only in the payload, so it is
            ``None`` when a retrieved record's payload could not be read.
        timestamp: Unix seconds; defaults to creation time.
        rater_address: Submitter's ledger address (tag only).
        transaction_id: Ledger-assigned identity, ``None`` until submitted.
    """

    first_name: str = ""
    middle_name: str = ""
    last_name: str = ""
    location: str = ""
    associations: str = ""
    score: int = 0
    comments: str | None = ""
    timestamp: int = 0
    rater_address: str = ""
    transaction_id: str | None = None

    @classmethod
    def create(
        cls,
        *,
        first_name: str | None = None,
        middle_name: str | None = None,
        last_name: str | None = None,
        location: str | None = None,
        associations: str | None = None,
        score: int = 0,
        comments: str | None = None,
        timestamp: int | None = None,
    ) -> Rating:
        """Build a normalized rating, defaulting the timestamp to now."""
        return cls(
            first_name=_clean(first_name),
            middle_name=_clean(middle_name),
            last_name=_clean(last_name),
            location=_clean(location),
            associations=_clean(associations),
            score=int(score),
            comments=_clean(comments),
            timestamp=int(timestamp) if timestamp is not None else int(time.time()),
        )

    @classmethod
    def from_payload(cls, data: Mapping[str, Any], *, now: int | None = None) -> Rating:
        """Build a rating from a decoded JSON payload object.

        Missing text fields become ``""``; a missing score becomes 0; a
        missing or unparseable timestamp becomes ``now`` (default: current
        time).

        Raises:
            ValidationError: If ``score`` is present but not an integer.
        """
        raw_score = data.get("score")
        if raw_score in (None, ""):
            score = 0
        else:
            parsed = coerce_int(raw_score)
            if parsed is None:
                raise ValidationError(f"Score must be an integer, got {raw_score!r}")
            score = parsed

        timestamp = coerce_int(data.get("timestamp"))
        if timestamp is None:
            timestamp = now if now is not None else int(time.time())

        return cls.create(
            first_name=data.get("firstName"),
            middle_name=data.get("middleName"),
            last_name=data.get("lastName"),
            location=data.get("location"),
            associations=data.get("associations"),
            score=score,
            comments=data.get("comments"),
            timestamp=timestamp,
        )

    @property
    def full_name(self) -> str:
        """Space-joined non-empty name parts, or ``"Anonymous"``."""
        parts = [p for p in (self.first_name, self.middle_name, self.last_name) if p]
        return " ".join(parts) if parts else "Anonymous"

    def summary(self) -> str:
        """One-line human-readable summary used at the confirmation prompt."""
        where = f" ({self.location})" if self.location else ""
        return f"{self.full_name}{where}: {self.score}/10"

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload object for this rating."""
        payload: dict[str, Any] = {key: getattr(self, attr) for attr, key in _TEXT_FIELDS}
        payload["score"] = self.score
        payload["comments"] = self.comments or ""
        payload["timestamp"] = self.timestamp
        return payload

    def payload_bytes(self) -> bytes:
        """Serialize the payload as compact UTF-8 JSON."""
        return json.dumps(self.to_payload(), separators=(",", ":"), ensure_ascii=False).encode(
            "utf-8"
        )


def parse_rating_payload(data: bytes | str) -> Rating:
    """Parse a rating file or request body.

    Raises:
        ValidationError: If the data is not valid JSON, is not a JSON object,
            or carries a non-integer score.
    """
    try:
        decoded = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError(f"Invalid JSON payload: {e}") from e
    if not isinstance(decoded, dict):
        raise ValidationError("Rating payload must be a JSON object")
    return Rating.from_payload(decoded)
