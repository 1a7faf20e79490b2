"""Ledger tag schema for ratings.

Tags are the indexed half of a rating: the GraphQL gateway can search by them
and return them without fetching the payload.  The mapping from a rating to
its tags is fixed and ordered::

    Content-Type   application/json
    App-Name       RateAnybody
    Data-Type      rating
    Unix-Time      <timestamp>
    First-Name     <first_name>
    Middle-Name    <middle_name>
    Last-Name      <last_name>
    Location       <location>
    Associations   <associations>
    Rating-Score   <score>
    Rater-Address  <submitter address>

A field contributes a tag only when its trimmed value is non-empty.  Numbers
are plain decimal strings.  Comments are never tagged because tag values are
length-limited; they travel only in the payload.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from rate_anybody.config import APP_NAME
from rate_anybody.rating import Rating

CONTENT_TYPE = "Content-Type"
APP_NAME_TAG = "App-Name"
DATA_TYPE = "Data-Type"
UNIX_TIME = "Unix-Time"
FIRST_NAME = "First-Name"
MIDDLE_NAME = "Middle-Name"
LAST_NAME = "Last-Name"
LOCATION = "Location"
ASSOCIATIONS = "Associations"
RATING_SCORE = "Rating-Score"
RATER_ADDRESS = "Rater-Address"
TARGET_ADDRESS = "Target-Address"

JSON_CONTENT_TYPE = "application/json"
RATING_DATA_TYPE = "rating"


@dataclass(frozen=True)
class Tag:
    """A single name/value pair attached to a ledger transaction."""

    name: str
    value: str

    def as_dict(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


class TagSet:
    """Ordered tag list with first-write-wins lookup.

    A transaction may legally carry the same tag name more than once.  Lookups
    return the first occurrence so the result does not depend on how a
    gateway happens to order duplicates further down the list.
    """

    def __init__(self, tags: Iterable[Tag] = ()) -> None:
        self._tags: list[Tag] = list(tags)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Mapping[str, Any]] | None) -> TagSet:
        """Fold a GraphQL ``[{name, value}, ...]`` list into a TagSet.

        Entries without a string name are skipped; a ``None`` value is
        treated as an empty string.
        """
        tags: list[Tag] = []
        for pair in pairs or ():
            name = pair.get("name")
            if not isinstance(name, str):
                continue
            value = pair.get("value")
            tags.append(Tag(name, "" if value is None else str(value)))
        return cls(tags)

    def add(self, name: str, value: Any) -> bool:
        """Append a tag if its trimmed value is non-empty.

        Returns:
            True if the tag was added.
        """
        text = "" if value is None else str(value).strip()
        if not text:
            return False
        self._tags.append(Tag(name, text))
        return True

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the first value for ``name``."""
        for tag in self._tags:
            if tag.name == name:
                return tag.value
        return default

    def __contains__(self, name: object) -> bool:
        return any(tag.name == name for tag in self._tags)

    def __iter__(self) -> Iterator[Tag]:
        return iter(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TagSet):
            return NotImplemented
        return self._tags == other._tags

    def __repr__(self) -> str:
        return f"TagSet({self._tags!r})"

    def names(self) -> list[str]:
        return [tag.name for tag in self._tags]

    def as_dicts(self) -> list[dict[str, str]]:
        """Return the tags in the ``[{name, value}]`` wire form."""
        return [tag.as_dict() for tag in self._tags]


def build_rating_tags(
    rating: Rating,
    rater_address: str | None = None,
    app_name: str = APP_NAME,
) -> TagSet:
    """Derive the ordered tag set for a rating.

    Args:
        rating: The rating being submitted.
        rater_address: The submitter's ledger address, tagged as
            ``Rater-Address`` when given.
        app_name: Application namespace for the ``App-Name`` tag.

    Returns:
        TagSet: Tags in the fixed schema order, empty fields omitted.
    """
    tags = TagSet()
    tags.add(CONTENT_TYPE, JSON_CONTENT_TYPE)
    tags.add(APP_NAME_TAG, app_name)
    tags.add(DATA_TYPE, RATING_DATA_TYPE)
    tags.add(UNIX_TIME, str(rating.timestamp))
    tags.add(FIRST_NAME, rating.first_name)
    tags.add(MIDDLE_NAME, rating.middle_name)
    tags.add(LAST_NAME, rating.last_name)
    tags.add(LOCATION, rating.location)
    tags.add(ASSOCIATIONS, rating.associations)
    tags.add(RATING_SCORE, str(rating.score))
    tags.add(RATER_ADDRESS, rater_address or rating.rater_address)
    return tags
