"""Replenishment of AI story collections.

``ReplenishmentEngine.replenish`` tops a collection up to a target number
of active AI stories: it counts what is there, asks the text provider for
the shortfall, parses the reply, re-counts right before saving, skips
duplicates, attaches audio where it can and persists what is still needed.

No lock is held across the provider call. The shortfall is checked twice
(before generation and again before saving) and each insert goes through
``StoryCRUD.create_if_room``; concurrent callers in other processes can
still overrun the target slightly.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from app.crud.story import StoryCRUD
from app.models.child import DEFAULT_CHILD_AGE, DEFAULT_CHILD_NAME
from app.models.story import StoryModel
from app.services.ai.collections import CollectionDescriptor, CollectionRegistry
from app.services.ai.groq_service import GroqService
from app.services.ai.parser import GenerationCandidate, parse_generated_stories
from app.services.ai.prompts import build_collection_messages
from app.services.tts.elevenlabs_service import ElevenLabsService
from app.utils.exceptions import InvalidCollectionError

logger = logging.getLogger(__name__)

GENERATION_MAX_TOKENS = 1600


@dataclass
class AudioResult:
    url: Optional[str]
    pending: bool


class ReplenishmentEngine:
    """Generates and persists AI stories until a collection reaches its target."""

    def __init__(
        self,
        stories: StoryCRUD,
        text_service: GroqService,
        speech_service: Optional[ElevenLabsService] = None,
        model: Optional[str] = None,
    ):
        """
        Initialize the engine.

        Args:
            stories: Story persistence
            text_service: Text generation gateway
            speech_service: Optional speech synthesis gateway
            model: Generation model override (defaults to the service's model)
        """
        self.stories = stories
        self.text_service = text_service
        self.speech_service = speech_service
        self.model = model

    async def replenish(
        self,
        collection_key: str,
        child_name: str = DEFAULT_CHILD_NAME,
        child_age: int = DEFAULT_CHILD_AGE,
        target_total: int = 1,
    ) -> List[StoryModel]:
        """
        Top a collection up to ``target_total`` active AI stories.

        Args:
            collection_key: Registered collection key
            child_name: Child named in the prompt
            child_age: Child's age, drives prompt and age range
            target_total: Desired number of active AI stories

        Returns:
            Newly persisted stories (possibly empty)

        Raises:
            InvalidCollectionError: If the collection key is unknown
        """
        collection = CollectionRegistry.describe(collection_key)
        if collection is None:
            raise InvalidCollectionError(collection_key)

        existing_count = self.stories.count_active_ai(collection_key)
        need = max(0, target_total - existing_count)
        if need == 0:
            logger.debug("Collection %s already has %d/%d stories",
                         collection_key, existing_count, target_total)
            return []

        logger.info("Replenishing %s: %d existing, %d needed", collection_key, existing_count, need)

        candidates = await self._generate_candidates(collection, need, child_name, child_age)
        if not candidates:
            logger.warning("No story candidates generated for %s", collection_key)
            return []

        # Generation can take a while; other requests may have filled the gap
        latest_count = self.stories.count_active_ai(collection_key)
        remaining_need = max(0, target_total - latest_count)
        if remaining_need == 0:
            logger.info("Collection %s was filled while generating; discarding %d candidates",
                        collection_key, len(candidates))
            return []

        saved: List[StoryModel] = []
        for index, candidate in enumerate(candidates[:remaining_need]):
            story = await self._save_candidate(collection, candidate, index, target_total)
            if story is not None:
                saved.append(story)

        logger.info("Saved %d new stories for %s", len(saved), collection_key)
        return saved

    async def _generate_candidates(
        self,
        collection: CollectionDescriptor,
        need: int,
        child_name: str,
        child_age: int,
    ) -> List[GenerationCandidate]:
        if not self.text_service.is_configured:
            logger.warning("Text generation not configured; no stories generated for %s", collection.key)
            return []

        messages = build_collection_messages(collection, need, child_name, child_age)
        raw_text = await self.text_service.generate_chat(
            messages,
            max_tokens=GENERATION_MAX_TOKENS,
            model=self.model,
        )
        if not raw_text:
            return []

        return parse_generated_stories(raw_text, child_age, need, child_name=child_name)

    async def _resolve_audio(
        self,
        collection: CollectionDescriptor,
        candidate: GenerationCandidate,
        index: int,
    ) -> AudioResult:
        existing_url = self.stories.find_reusable_audio_url(candidate.title, candidate.content)
        if existing_url:
            return AudioResult(url=existing_url, pending=False)

        if self.speech_service is None or not self.speech_service.is_configured:
            return AudioResult(url=None, pending=False)

        url = await self.speech_service.synthesize(candidate.content, f"{collection.key}-{index}")
        if url:
            return AudioResult(url=url, pending=False)
        return AudioResult(url=None, pending=True)

    async def _save_candidate(
        self,
        collection: CollectionDescriptor,
        candidate: GenerationCandidate,
        index: int,
        target_total: int,
    ) -> Optional[StoryModel]:
        try:
            if self.stories.find_active_duplicate(collection.key, candidate.title):
                logger.info("Skipping duplicate story: %s", candidate.title)
                return None

            audio = await self._resolve_audio(collection, candidate, index)

            story = StoryModel(
                **candidate.to_story_fields(),
                theme=collection.theme,
                category=collection.category,
                thumbnail=collection.icon,
                is_ai_generated=True,
                generated_for_collection=collection.key,
                is_active=True,
                audio_url=audio.url,
                audio_pending=audio.pending,
            )
            saved = self.stories.create_if_room(story, collection.key, target_total)
        except Exception as e:
            # One bad candidate must not sink the rest of the batch
            logger.error("Failed to save AI story '%s': %s", candidate.title, e, exc_info=True)
            return None

        if saved is not None:
            logger.info("Story saved with generated_for_collection: %s", saved.generated_for_collection)
        return saved
