"""Tests for parsing model output into story candidates."""

import json

import pytest

from app.services.ai.parser import (
    DEFAULT_DURATION,
    clamp_duration,
    parse_generated_stories,
    parse_lines,
    parse_structured,
)


def _array(n, **extra):
    return json.dumps([
        {"title": f"Story {i}", "description": "desc", "content": f"Body {i}", **extra}
        for i in range(n)
    ])


def test_structured_array_is_truncated_to_count():
    text = "Here you go:\n" + _array(5, duration=9) + "\nEnjoy!"
    candidates = parse_generated_stories(text, child_age=5, count=3)

    assert [c.title for c in candidates] == ["Story 0", "Story 1", "Story 2"]
    assert all(c.duration == 9 for c in candidates)


def test_structured_skips_entries_without_title_or_content():
    text = json.dumps([
        {"title": "", "content": "no title"},
        {"title": "No body"},
        "not an object",
        {"title": "  Kept  ", "content": " Body ", "description": "d"},
    ])
    candidates = parse_structured(text, child_age=6, count=4)

    assert len(candidates) == 1
    assert candidates[0].title == "Kept"
    assert candidates[0].content == "Body"


def test_garbage_yields_no_candidates():
    assert parse_generated_stories("I'm sorry, I can't help with that.", 5, 3) == []
    assert parse_generated_stories("", 5, 3) == []
    assert parse_generated_stories(None, 5, 3) == []


def test_invalid_json_falls_back_to_lines():
    text = "[not json]\n1. The Moon Cat - A sleepy cat - The cat yawned at the moon - 12 min"
    candidates = parse_generated_stories(text, child_age=5, count=2)

    assert len(candidates) == 1
    assert candidates[0].title == "The Moon Cat"
    assert candidates[0].duration == 12


def test_line_format_with_duration_and_numbering():
    text = (
        "1) The Brave Owl - An owl learns to fly - The owl flapped and flapped - 12 min\n"
        "2. Garden Friends - Bugs help each other - A ladybug met an ant\n"
        "just some chatter without separators\n"
    )
    candidates = parse_lines(text, child_age=5, count=5)

    assert [c.title for c in candidates] == ["The Brave Owl", "Garden Friends"]
    assert candidates[0].duration == 12
    assert candidates[1].duration == DEFAULT_DURATION
    assert candidates[1].content == "A ladybug met an ant"


def test_line_format_tries_alternate_separators():
    text = "Starlight | A wish upon a star | Mia wished for a puppy"
    candidates = parse_lines(text, child_age=7, count=1)

    assert candidates[0].title == "Starlight"
    assert candidates[0].description == "A wish upon a star"


def test_durations_are_clamped():
    assert clamp_duration(None) == DEFAULT_DURATION
    assert clamp_duration(0) == DEFAULT_DURATION
    assert clamp_duration(True) == DEFAULT_DURATION
    assert clamp_duration("soon") == DEFAULT_DURATION
    assert clamp_duration(2) == 5
    assert clamp_duration(45) == 20
    assert clamp_duration("12 min") == 12


def test_age_range_follows_child_age():
    candidates = parse_generated_stories(_array(1), child_age=5, count=1)
    assert (candidates[0].age_range.min, candidates[0].age_range.max) == (3, 7)

    candidates = parse_generated_stories(_array(1), child_age=1, count=1)
    assert (candidates[0].age_range.min, candidates[0].age_range.max) == (2, 3)

    candidates = parse_generated_stories(_array(1), child_age=12, count=1)
    assert (candidates[0].age_range.min, candidates[0].age_range.max) == (10, 12)


def test_long_titles_are_truncated():
    text = json.dumps([{"title": "x" * 150, "content": "body"}])
    candidates = parse_generated_stories(text, child_age=5, count=1)

    assert len(candidates[0].title) == 100


def test_duration_is_read_from_the_line():
    text = "Brave Fox - A tale of courage - Once there was... - 12 min"
    assert parse_generated_stories(text, child_age=5, count=1)[0].duration == 12

    text = "Brave Fox - A tale of courage - Once there was..."
    assert parse_generated_stories(text, child_age=5, count=1)[0].duration == DEFAULT_DURATION


@pytest.mark.parametrize("raw_duration", ["Infinity", "-Infinity", "1e999", "NaN"])
def test_non_finite_durations_fall_back_to_default(raw_duration):
    text = '[{"title": "Fox", "content": "Once", "duration": %s}]' % raw_duration
    candidates = parse_generated_stories(text, child_age=5, count=1)

    assert [c.title for c in candidates] == ["Fox"]
    assert candidates[0].duration == DEFAULT_DURATION


def test_deeply_nested_span_falls_back_to_lines():
    text = "[" * 100000 + "]" * 100000
    assert parse_generated_stories(text, child_age=5, count=1) == []

    text += "\nBrave Fox - A tale of courage - Once there was a fox - 6 min"
    candidates = parse_generated_stories(text, child_age=5, count=1)
    assert candidates[0].title == "Brave Fox"
    assert candidates[0].duration == 6


def test_long_descriptions_are_truncated():
    structured = json.dumps([{"title": "Wordy", "description": "d" * 600, "content": "body"}])
    candidates = parse_generated_stories(structured, child_age=5, count=1)
    assert len(candidates[0].description) == 500

    line = "Wordy - " + "d" * 600 + " - The body of the story"
    candidates = parse_generated_stories(line, child_age=5, count=1)
    assert len(candidates[0].description) == 500
