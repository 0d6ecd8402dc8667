"""Parse raw model output into story candidates."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.models.story import AgeRange

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500

DEFAULT_DURATION = 8
MIN_DURATION = 5
MAX_DURATION = 20

# Tried in order; the first one that yields at least three segments wins
LINE_SEPARATORS = (" - ", " — ", " – ", ":", " | ")

_DURATION_PATTERN = re.compile(r"(\d{1,2})\s*min", re.IGNORECASE)
_TRAILING_DURATION_PATTERN = re.compile(r"[-—–:]\s*\d+\s*min\.?$", re.IGNORECASE)
_LEADING_NUMBERING_PATTERN = re.compile(r"^[\d.)\s]+")


@dataclass
class GenerationCandidate:
    """A parsed story that has not been persisted yet."""

    title: str
    description: str
    content: str
    duration: int
    age_range: AgeRange

    def to_story_fields(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "duration": self.duration,
            "age_range": self.age_range,
        }


def clamp_duration(value: Any) -> int:
    """Coerce a duration to whole minutes within [5, 20], defaulting to 8."""
    if value is None or isinstance(value, bool):
        return DEFAULT_DURATION
    try:
        minutes = int(value)
    except OverflowError:
        # Infinity or 1e999 in the JSON
        return DEFAULT_DURATION
    except (TypeError, ValueError):
        # Tolerate "12 min" and similar strings
        match = re.match(r"\s*(\d+)", str(value))
        if not match:
            return DEFAULT_DURATION
        minutes = int(match.group(1))
    if minutes == 0:
        return DEFAULT_DURATION
    return min(MAX_DURATION, max(MIN_DURATION, minutes))


def _strip_trailing_duration(text: str) -> str:
    return _TRAILING_DURATION_PATTERN.sub("", text).strip()


def parse_structured(text: str, child_age: int, count: int) -> List[GenerationCandidate]:
    """
    Parse a JSON array of story objects embedded anywhere in the text.

    Args:
        text: Raw model output
        child_age: Child's age in years
        count: Maximum number of candidates

    Returns:
        Accepted candidates (empty if no usable array was found)

    Raises:
        ValueError: If the bracketed span is not a JSON array
    """
    first = text.find("[")
    last = text.rfind("]")
    if first == -1 or last == -1 or last <= first:
        return []

    data = json.loads(text[first:last + 1])
    if not isinstance(data, list):
        raise ValueError("Structured output is not an array")

    age_range = AgeRange.for_child_age(child_age)
    candidates: List[GenerationCandidate] = []

    for obj in data:
        if len(candidates) >= count:
            break
        if not isinstance(obj, dict):
            continue
        title = str(obj.get("title") or "").strip()
        content = str(obj.get("content") or "").strip()
        if not title or not content:
            continue
        candidates.append(GenerationCandidate(
            title=title[:MAX_TITLE_LENGTH].strip(),
            description=str(obj.get("description") or "").strip()[:MAX_DESCRIPTION_LENGTH],
            content=content,
            duration=clamp_duration(obj.get("duration")),
            age_range=age_range,
        ))

    return candidates


def parse_lines(
    text: str,
    child_age: int,
    count: int,
    child_name: str = "friend",
) -> List[GenerationCandidate]:
    """
    Parse "Title - Description - Story - N min" style lines.

    Args:
        text: Raw model output
        child_age: Child's age in years
        count: Maximum number of candidates
        child_name: Name used in placeholder text

    Returns:
        Accepted candidates; malformed lines are skipped
    """
    lines = [line.strip() for line in (text or "").splitlines()]
    age_range = AgeRange.for_child_age(child_age)
    candidates: List[GenerationCandidate] = []

    for line in lines:
        if len(candidates) >= count:
            break
        if not line:
            continue

        parts: List[str] = []
        for separator in LINE_SEPARATORS:
            parts = line.split(separator)
            if len(parts) >= 3:
                break
        if len(parts) < 3:
            continue

        title = _LEADING_NUMBERING_PATTERN.sub("", parts[0]).strip()
        title = title or f"Story {len(candidates) + 1}"
        title = _strip_trailing_duration(title[:MAX_TITLE_LENGTH])

        description = parts[1].strip() or f"A wonderful story for {child_name}."
        description = _strip_trailing_duration(description[:MAX_DESCRIPTION_LENGTH])

        body = " - ".join(p.strip() for p in parts[2:]).strip()
        body = body or f"Once upon a time, {child_name} discovered something magical..."

        duration = DEFAULT_DURATION
        match = _DURATION_PATTERN.search(line)
        if match:
            duration = clamp_duration(match.group(1))

        if not title:
            continue

        candidates.append(GenerationCandidate(
            title=title,
            description=description,
            content=body,
            duration=duration,
            age_range=age_range,
        ))

    return candidates


def parse_generated_stories(
    text: Optional[str],
    child_age: int,
    count: int,
    child_name: str = "friend",
) -> List[GenerationCandidate]:
    """
    Turn raw model output into at most ``count`` story candidates.

    The structured JSON array is tried first; when it is missing, malformed
    or yields nothing usable, the loosely-delimited line format is parsed
    instead. Never raises for malformed input.

    Args:
        text: Raw model output
        child_age: Child's age in years
        count: Number of candidates requested
        child_name: Name used in placeholder text

    Returns:
        Best-effort list of candidates, possibly empty
    """
    if not text or count <= 0:
        return []

    candidates: List[GenerationCandidate] = []
    try:
        candidates = parse_structured(text, child_age, count)
    except Exception as e:
        # Any failure in the structured span (bad JSON, absurd nesting) falls through to lines
        logger.debug("Structured parse failed, falling back to lines: %s", e)
        candidates = []

    if not candidates:
        candidates = parse_lines(text, child_age, count, child_name=child_name)

    return candidates[:count]
