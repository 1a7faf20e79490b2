"""
Unit tests for the tag schema (rate_anybody/tags.py).

Tests cover:
- Fixed tag order and presence rules
- Omission of empty fields and comments
- First-write-wins lookup on duplicate names
- Folding GraphQL tag lists
"""

import pytest

from rate_anybody.rating import Rating
from rate_anybody.tags import Tag, TagSet, build_rating_tags

# ============================================================================
# build_rating_tags TESTS
# ============================================================================


@pytest.mark.unit
def test_full_rating_tags_in_schema_order(sample_rating):
    tags = build_rating_tags(sample_rating, rater_address="addr123")

    assert tags.names() == [
        "Content-Type",
        "App-Name",
        "Data-Type",
        "Unix-Time",
        "First-Name",
        "Last-Name",
        "Location",
        "Associations",
        "Rating-Score",
        "Rater-Address",
    ]
    assert tags.get("Content-Type") == "application/json"
    assert tags.get("App-Name") == "RateAnybody"
    assert tags.get("Data-Type") == "rating"
    assert tags.get("Unix-Time") == str(sample_rating.timestamp)
    assert tags.get("Rating-Score") == "9"
    assert tags.get("Rater-Address") == "addr123"


@pytest.mark.unit
def test_empty_fields_are_not_tagged():
    rating = Rating.create(first_name="Ada", middle_name="   ", score=5, timestamp=1)

    tags = build_rating_tags(rating)

    assert "First-Name" in tags
    for absent in ("Middle-Name", "Last-Name", "Location", "Associations", "Rater-Address"):
        assert absent not in tags


@pytest.mark.unit
def test_comments_are_never_tagged(sample_rating):
    tags = build_rating_tags(sample_rating, rater_address="addr")

    assert all("First programmer" not in tag.value for tag in tags)
    assert "Comments" not in tags


@pytest.mark.unit
def test_score_zero_is_tagged():
    tags = build_rating_tags(Rating.create(score=0, timestamp=1))
    assert tags.get("Rating-Score") == "0"


@pytest.mark.unit
def test_app_name_override():
    tags = build_rating_tags(Rating.create(score=1, timestamp=1), app_name="RateAnybody-Dev")
    assert tags.get("App-Name") == "RateAnybody-Dev"


@pytest.mark.unit
def test_rater_address_falls_back_to_rating_field():
    rating = Rating(score=1, timestamp=1, rater_address="from-rating")
    assert build_rating_tags(rating).get("Rater-Address") == "from-rating"


# ============================================================================
# TagSet TESTS
# ============================================================================


@pytest.mark.unit
def test_tagset_first_write_wins():
    tags = TagSet([Tag("First-Name", "Ada"), Tag("First-Name", "Grace")])

    assert tags.get("First-Name") == "Ada"
    assert len(tags) == 2


@pytest.mark.unit
def test_tagset_get_default():
    assert TagSet().get("Missing", "fallback") == "fallback"


@pytest.mark.unit
def test_tagset_add_skips_blank_values():
    tags = TagSet()

    assert tags.add("Location", "  ") is False
    assert tags.add("Location", None) is False
    assert tags.add("Location", " Paris ") is True
    assert tags.get("Location") == "Paris"


@pytest.mark.unit
def test_tagset_from_pairs():
    tags = TagSet.from_pairs(
        [
            {"name": "App-Name", "value": "RateAnybody"},
            {"name": "Rating-Score", "value": None},
            {"value": "no name"},
        ]
    )

    assert tags.names() == ["App-Name", "Rating-Score"]
    assert tags.get("Rating-Score") == ""


@pytest.mark.unit
def test_tagset_from_none():
    assert len(TagSet.from_pairs(None)) == 0


@pytest.mark.unit
def test_tagset_as_dicts():
    tags = TagSet([Tag("A", "1")])
    assert tags.as_dicts() == [{"name": "A", "value": "1"}]


@pytest.mark.unit
def test_tagset_equality():
    assert TagSet([Tag("A", "1")]) == TagSet.from_pairs([{"name": "A", "value": "1"}])
    assert TagSet([Tag("A", "1")]) != TagSet([Tag("A", "2")])
