"""
Unit tests for reconciliation (rate_anybody/reconcile.py).

Tests cover:
- Round trip of a rating through its tags and payload
- Tag precedence over payload values
- Partial records when the payload is missing or malformed
- Score and timestamp fallbacks
- Ordering of views
"""

import json

import pytest

from rate_anybody.rating import Rating
from rate_anybody.reconcile import (
    RatingView,
    parse_payload,
    reconcile,
    reconcile_view,
    sort_ratings,
)
from rate_anybody.tags import Tag, TagSet, build_rating_tags
from tests.constants import TX_ID


def _tags(**values: str) -> TagSet:
    return TagSet(Tag(name.replace("_", "-"), value) for name, value in values.items())


# ============================================================================
# ROUND TRIP AND PRECEDENCE
# ============================================================================


@pytest.mark.unit
def test_round_trip_reproduces_rating(sample_rating):
    tags = build_rating_tags(sample_rating, rater_address="rater-1")

    result = reconcile(TX_ID, tags, sample_rating.to_payload())

    assert result.first_name == sample_rating.first_name
    assert result.middle_name == sample_rating.middle_name
    assert result.last_name == sample_rating.last_name
    assert result.location == sample_rating.location
    assert result.associations == sample_rating.associations
    assert result.score == sample_rating.score
    assert result.comments == sample_rating.comments
    assert result.timestamp == sample_rating.timestamp
    assert result.rater_address == "rater-1"
    assert result.transaction_id == TX_ID


@pytest.mark.unit
def test_tag_wins_over_payload():
    tags = _tags(First_Name="Ada")

    result = reconcile(TX_ID, tags, {"firstName": "Grace"})

    assert result.first_name == "Ada"


@pytest.mark.unit
def test_empty_tag_falls_back_to_payload():
    tags = _tags(First_Name="  ")

    result = reconcile(TX_ID, tags, {"firstName": "Grace"})

    assert result.first_name == "Grace"


@pytest.mark.unit
def test_missing_everywhere_is_empty_string():
    result = reconcile(TX_ID, TagSet(), {})

    assert result.location == ""
    assert result.associations == ""


@pytest.mark.unit
def test_relay_sample_person_tags_are_read():
    tags = _tags(Person_First_Name="Elon", Person_Location="Austin, TX")

    result = reconcile(TX_ID, tags, None)

    assert result.first_name == "Elon"
    assert result.location == "Austin, TX"


@pytest.mark.unit
def test_duplicate_tags_use_first():
    tags = TagSet([Tag("Rating-Score", "3"), Tag("Rating-Score", "9")])
    assert reconcile(TX_ID, tags, None).score == 3


# ============================================================================
# SCORE AND TIMESTAMP FALLBACKS
# ============================================================================


@pytest.mark.unit
def test_score_from_payload_when_tag_unparseable():
    result = reconcile(TX_ID, _tags(Rating_Score="ten"), {"score": 6})
    assert result.score == 6


@pytest.mark.unit
def test_score_zero_when_unknown():
    assert reconcile(TX_ID, TagSet(), {"score": "n/a"}).score == 0


@pytest.mark.unit
def test_timestamp_precedence():
    assert reconcile(TX_ID, _tags(Unix_Time="300"), {"timestamp": 200}, 100).timestamp == 300
    assert reconcile(TX_ID, TagSet(), {"timestamp": 200}, 100).timestamp == 200
    assert reconcile(TX_ID, TagSet(), {}, 100).timestamp == 100
    assert reconcile(TX_ID, TagSet(), {}).timestamp == 0


# ============================================================================
# PARTIAL RECORDS
# ============================================================================


@pytest.mark.unit
def test_malformed_payload_gives_partial_view_from_tags():
    tags = _tags(First_Name="Bob", Rating_Score="7")

    view = reconcile_view(TX_ID, tags, b"<html>gateway error</html>")

    assert view.partial is True
    assert view.problem == "payload is not a JSON object"
    assert view.rating.first_name == "Bob"
    assert view.rating.score == 7
    assert view.rating.comments is None


@pytest.mark.unit
def test_missing_payload_keeps_fetch_problem():
    view = reconcile_view(TX_ID, _tags(First_Name="Bob"), None, problem="404 Not Found")

    assert view.partial is True
    assert view.problem == "404 Not Found"
    assert view.rating.comments is None


@pytest.mark.unit
def test_good_payload_is_not_partial(sample_rating):
    tags = build_rating_tags(sample_rating)

    view = reconcile_view(TX_ID, tags, sample_rating.payload_bytes())

    assert view.partial is False
    assert view.problem is None
    assert view.rating.comments == "First programmer"
    assert view.transaction_id == TX_ID


@pytest.mark.unit
def test_non_string_comments_are_stringified():
    result = reconcile(TX_ID, TagSet(), {"comments": 42})
    assert result.comments == "42"


@pytest.mark.unit
@pytest.mark.parametrize("raw", [None, b"", b"not json", b"[1]", b'"text"', b"\xff\xfe"])
def test_parse_payload_rejects_unusable(raw):
    assert parse_payload(raw) is None


@pytest.mark.unit
def test_parse_payload_object():
    assert parse_payload(json.dumps({"score": 1})) == {"score": 1}


# ============================================================================
# ORDERING
# ============================================================================


@pytest.mark.unit
def test_sort_most_recent_first_missing_last():
    views = [
        RatingView(Rating(timestamp=100, transaction_id="a")),
        RatingView(Rating(timestamp=0, transaction_id="b")),
        RatingView(Rating(timestamp=300, transaction_id="c")),
    ]

    ordered = sort_ratings(views)

    assert [v.rating.timestamp for v in ordered] == [300, 100, 0]


@pytest.mark.unit
def test_sort_is_stable_for_equal_timestamps():
    views = [RatingView(Rating(timestamp=5, transaction_id=str(i))) for i in range(4)]
    assert [v.transaction_id for v in sort_ratings(views)] == ["0", "1", "2", "3"]
