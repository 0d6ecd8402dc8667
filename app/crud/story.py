"""
Story CRUD Operations
Database operations for story documents.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from app.crud.base import BaseCRUD
from app.models.story import StoryModel

logger = logging.getLogger(__name__)

# Guards the check-then-insert in ``create_if_room`` within this process
_reserve_lock = threading.Lock()

# Library orderings, all descending
SORT_KEYS: Dict[str, Callable[[StoryModel], Any]] = {
    "popular": lambda s: s.stats.total_plays,
    "rating": lambda s: s.stats.average_rating,
    "newest": lambda s: s.created_at,
}


class StoryCRUD(BaseCRUD[StoryModel]):
    """CRUD operations for story documents."""

    @property
    def collection_name(self) -> str:
        """Get collection name."""
        return "stories"

    @staticmethod
    def _active_ai_filters(collection_key: str) -> List[tuple]:
        return [
            ("generated_for_collection", "==", collection_key),
            ("is_active", "==", True),
            ("is_ai_generated", "==", True),
        ]

    @staticmethod
    def _to_model(data: Dict[str, Any]) -> Optional[StoryModel]:
        try:
            return StoryModel.from_dict(data)
        except PydanticValidationError as e:
            logger.warning("Skipping malformed story document %s: %s", data.get("id"), e)
            return None

    def count_active_ai(self, collection_key: str) -> int:
        """
        Count active AI-generated stories in a collection.

        Always reads the store; the value is never cached because other
        requests may be writing to the same collection.

        Args:
            collection_key: Collection key

        Returns:
            Number of active AI stories for the collection
        """
        return self.count(self._active_ai_filters(collection_key))

    def list_active_ai(self, collection_key: str, limit: int = 10) -> List[StoryModel]:
        """
        Get the newest active AI stories of a collection.

        Args:
            collection_key: Collection key
            limit: Maximum number of stories

        Returns:
            Stories ordered newest first
        """
        docs = self.find(
            filters=self._active_ai_filters(collection_key),
            order_by="created_at",
            direction="DESCENDING",
            limit=limit,
        )
        stories = [self._to_model(d) for d in docs]
        return [s for s in stories if s is not None]

    def find_active_duplicate(self, collection_key: str, title: str) -> Optional[Dict[str, Any]]:
        """Find an active story with exactly this title in the collection."""
        return self.find_one([
            ("title", "==", title),
            ("generated_for_collection", "==", collection_key),
            ("is_active", "==", True),
        ])

    def find_reusable_audio_url(self, title: str, content: str) -> Optional[str]:
        """
        Look for already-synthesized audio for the same story text.

        Matches any story (any collection, active or not) with the same
        title or the same content body that carries an ``audio_url``.

        Args:
            title: Story title
            content: Story body

        Returns:
            Existing audio URL, or None
        """
        for field, value in (("title", title), ("content", content)):
            if not value:
                continue
            match = self.find_one([(field, "==", value), ("audio_url", "!=", None)])
            if match and match.get("audio_url"):
                return match["audio_url"]
        return None

    def list_active(
        self,
        theme: Optional[str] = None,
        category: Optional[str] = None,
        age: Optional[int] = None,
        sort: str = "popular",
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[StoryModel], int]:
        """
        Browse the active story library.

        Theme and category are matched in the store. The age window and
        ordering are applied in memory.

        Args:
            theme: Optional theme filter
            category: Optional category filter
            age: Only stories whose age range includes this age
            sort: "popular" (plays), "rating" or "newest"
            limit: Page size
            offset: Number of stories to skip

        Returns:
            (page of stories, total number of matches)
        """
        filters = [("is_active", "==", True)]
        if theme:
            filters.append(("theme", "==", theme))
        if category:
            filters.append(("category", "==", category))

        stories = [s for s in (self._to_model(d) for d in self.find(filters=filters)) if s is not None]

        if age is not None:
            stories = [s for s in stories if s.age_range.min <= age <= s.age_range.max]

        sort_key = SORT_KEYS.get(sort, SORT_KEYS["popular"])
        stories.sort(key=sort_key, reverse=True)

        return stories[offset:offset + limit], len(stories)

    def distinct_active(self, field: str) -> List[str]:
        """Distinct values of a top-level field across active stories."""
        values = {d.get(field) for d in self.find(filters=[("is_active", "==", True)])}
        return sorted(v for v in values if v)

    def get_story(self, story_id: str) -> Optional[StoryModel]:
        data = self.get_by_id(story_id)
        if data is None:
            return None
        return self._to_model(data)

    def create_story(self, story: StoryModel) -> StoryModel:
        """
        Insert a story and return it with the store-assigned ID.

        Args:
            story: Story to persist

        Returns:
            Persisted story
        """
        doc_id = self.create(story.to_dict())
        return story.model_copy(update={"id": doc_id})

    def create_if_room(
        self,
        story: StoryModel,
        collection_key: str,
        target_total: int,
    ) -> Optional[StoryModel]:
        """
        Insert an AI story only while the collection is below target.

        Duplicate check, count check and insert run back to back with no
        suspension point in between, so concurrent replenishments in this
        process cannot both claim the last slot or the same title. Across
        processes this remains best-effort.

        Args:
            story: AI story to persist
            collection_key: Collection the story belongs to
            target_total: Desired number of active AI stories

        Returns:
            Persisted story, or None when it was a duplicate or the
            collection is already full
        """
        with _reserve_lock:
            if self.find_active_duplicate(collection_key, story.title):
                logger.info("Skipping duplicate story: %s", story.title)
                return None
            if self.count_active_ai(collection_key) >= target_total:
                logger.info(
                    "Collection %s reached %d stories; not saving '%s'",
                    collection_key, target_total, story.title,
                )
                return None
            return self.create_story(story)

    def save_story(self, story: StoryModel) -> bool:
        """Write back mutable fields of an existing story."""
        if not story.id:
            return False
        story.updated_at = datetime.utcnow()
        return self.update(story.id, story.to_dict())

    def deactivate(self, story_id: str) -> bool:
        """
        Soft-delete a story.

        Args:
            story_id: Story ID

        Returns:
            True if an active story was deactivated
        """
        data = self.get_by_id(story_id)
        if not data or not data.get("is_active", True):
            return False
        return self.update(story_id, {"is_active": False})
