"""Tests for story library queries."""

from datetime import datetime

from conftest import make_ai_story


def _library_story(title, **overrides):
    fields = dict(is_ai_generated=False, generated_for_collection=None, theme="nature", category="audio")
    fields.update(overrides)
    return make_ai_story(title, **fields)


def test_age_window_is_inclusive(story_crud):
    story_crud.create_story(_library_story("Toddler", age_range={"min": 2, "max": 4}))
    story_crud.create_story(_library_story("Older", age_range={"min": 5, "max": 9}))

    young, _ = story_crud.list_active(age=4)
    older, _ = story_crud.list_active(age=5)
    everyone, total = story_crud.list_active()

    assert [s.title for s in young] == ["Toddler"]
    assert [s.title for s in older] == ["Older"]
    assert total == 2
    assert len(everyone) == 2


def test_rating_and_newest_orderings(story_crud):
    story_crud.create_story(_library_story(
        "Old Favourite", stats={"average_rating": 4.8}, created_at=datetime(2024, 1, 1),
    ))
    story_crud.create_story(_library_story(
        "New Arrival", stats={"average_rating": 3.0}, created_at=datetime(2025, 6, 1),
    ))

    by_rating, _ = story_crud.list_active(sort="rating")
    newest, _ = story_crud.list_active(sort="newest")

    assert [s.title for s in by_rating] == ["Old Favourite", "New Arrival"]
    assert [s.title for s in newest] == ["New Arrival", "Old Favourite"]


def test_offset_and_limit_slice_after_sorting(story_crud):
    for plays in range(5):
        story_crud.create_story(_library_story(f"Story {plays}", stats={"total_plays": plays}))

    page, total = story_crud.list_active(limit=2, offset=2)

    assert total == 5
    assert [s.title for s in page] == ["Story 2", "Story 1"]


def test_distinct_active_skips_retired_stories(story_crud):
    story_crud.create_story(_library_story("Kept", theme="family"))
    story_crud.create_story(_library_story("Also Kept", theme="family"))
    story_crud.create_story(_library_story("Retired", theme="science", is_active=False))

    assert story_crud.distinct_active("theme") == ["family"]
