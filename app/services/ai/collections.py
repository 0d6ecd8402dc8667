"""Story collection registry: the single source of truth for AI collections."""

from dataclasses import asdict, dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class CollectionDescriptor:
    """Generation parameters for one AI story collection."""

    key: str
    label: str
    icon: str
    prompt: str
    theme: str
    category: str

    def to_dict(self) -> dict:
        return asdict(self)


# ── Collection Registry ───────────────────────────────────────────────
# Every collection the app presents is defined here. Story documents
# reference these keys through ``generated_for_collection``.

STORY_COLLECTIONS: Dict[str, CollectionDescriptor] = {
    "mom-stories": CollectionDescriptor(
        key="mom-stories",
        label="Stories from Mom",
        icon="👩",
        prompt=(
            "Generate warm, nurturing stories told from a mother's perspective. "
            "Focus on bedtime comfort, gentle life lessons, and family love."
        ),
        theme="family",
        category="audio",
    ),
    "grandma-stories": CollectionDescriptor(
        key="grandma-stories",
        label="Stories from Grandma",
        icon="👵",
        prompt=(
            "Generate wise, nostalgic stories told from a grandmother's perspective. "
            "Include timeless wisdom, traditions, and gentle humor."
        ),
        theme="family",
        category="audio",
    ),
    "now-stories": CollectionDescriptor(
        key="now-stories",
        label="Perfect Right Now",
        icon="⭐",
        prompt=(
            "Generate engaging, age-appropriate stories perfect for the current moment. "
            "Include adventure, excitement, and positive energy."
        ),
        theme="adventure",
        category="interactive",
    ),
    "learn-stories": CollectionDescriptor(
        key="learn-stories",
        label="Learning Adventures",
        icon="🎓",
        prompt=(
            "Generate educational stories that teach concepts through adventure. "
            "Focus on science, nature, problem-solving, and curiosity."
        ),
        theme="learning",
        category="educational",
    ),
}


class CollectionRegistry:
    """Read-only lookups over the collection registry."""

    @staticmethod
    def describe(key: str) -> Optional[CollectionDescriptor]:
        if not key:
            return None
        return STORY_COLLECTIONS.get(key)

    @staticmethod
    def is_valid(key: str) -> bool:
        return bool(key) and key in STORY_COLLECTIONS

    @staticmethod
    def keys() -> List[str]:
        return list(STORY_COLLECTIONS.keys())

    @staticmethod
    def get_collections_as_dicts() -> List[dict]:
        return [c.to_dict() for c in STORY_COLLECTIONS.values()]
