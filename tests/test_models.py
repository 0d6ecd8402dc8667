"""Tests for story models and the collection registry."""

import pytest
from pydantic import ValidationError

from app.models.story import AgeRange, StoryModel, StoryStats
from app.services.ai.collections import CollectionRegistry

from conftest import make_ai_story


def test_registry_lists_the_four_collections():
    assert CollectionRegistry.keys() == ["mom-stories", "grandma-stories", "now-stories", "learn-stories"]

    learn = CollectionRegistry.describe("learn-stories")
    assert learn.icon == "🎓"
    assert learn.theme == "learning"
    assert learn.category == "educational"


@pytest.mark.parametrize("key", ["", None, "dad-stories", "MOM-STORIES"])
def test_registry_rejects_unknown_keys(key):
    assert CollectionRegistry.describe(key) is None
    assert not CollectionRegistry.is_valid(key)


def test_running_mean_rating():
    stats = StoryStats()
    stats.add_rating(4)
    stats.add_rating(2)

    assert stats.average_rating == 3
    assert stats.total_ratings == 2


@pytest.mark.parametrize("rating", [0, 5.5, -1])
def test_rating_out_of_range_is_rejected(rating):
    stats = StoryStats()
    with pytest.raises(ValueError):
        stats.add_rating(rating)
    assert stats.total_ratings == 0


def test_play_and_completion_counters():
    stats = StoryStats()
    assert stats.record_play() == 1
    assert stats.last_played is not None
    assert stats.record_completion() == 1


def test_age_range_bounds():
    with pytest.raises(ValidationError):
        AgeRange(min=8, max=4)
    with pytest.raises(ValidationError):
        AgeRange(min=1, max=4)
    with pytest.raises(ValidationError):
        AgeRange(min=3, max=13)


def test_ai_story_requires_collection():
    with pytest.raises(ValidationError):
        make_ai_story("Orphan", generated_for_collection=None)


def test_ai_story_rejects_unknown_collection():
    with pytest.raises(ValidationError):
        make_ai_story("Lost", collection_key="dad-stories")


def test_title_is_trimmed_and_dict_drops_id():
    story = make_ai_story("  Moonbeam  ", id="abc")
    data = story.to_dict()

    assert story.title == "Moonbeam"
    assert "id" not in data
    assert data["theme"] == "family"
    assert data["age_range"] == {"min": 3, "max": 7}


def test_hand_authored_story_needs_no_collection():
    story = StoryModel(
        title="Classic",
        content="Once upon a time.",
        duration=5,
        age_range=AgeRange(min=4, max=6),
        theme="kindness",
        category="bedtime",
    )
    assert story.generated_for_collection is None
    assert story.is_ai_generated is False
