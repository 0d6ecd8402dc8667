"""Shared fixtures and provider fakes."""

import asyncio
import json
import os
import tempfile
from typing import List, Optional

import pytest

# Keep tests in local mode and away from real providers and the repo tree
os.environ["FIREBASE_CREDENTIALS_PATH"] = ""
os.environ["GROQ_API_KEY"] = ""
os.environ["ELEVENLABS_API_KEY"] = ""
os.environ["AI_AUDIO_DIR"] = tempfile.mkdtemp(prefix="storynest-audio-")
os.environ["LOCAL_DATA_DIR"] = tempfile.mkdtemp(prefix="storynest-data-")

from app.crud.child import ChildCRUD  # noqa: E402
from app.crud.story import StoryCRUD  # noqa: E402
from app.models.story import AgeRange, StoryModel  # noqa: E402
from app.services.local_store import LocalStore  # noqa: E402


class FakeTextService:
    """Stands in for GroqService; replies are returned in order, the last one repeats."""

    def __init__(self, replies: Optional[List[str]] = None, configured: bool = True, delay: float = 0):
        self.replies = list(replies or [])
        self.configured = configured
        self.delay = delay
        self.calls: List[dict] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def generate_chat(self, messages, max_tokens=1200, model=None, temperature=0.8) -> str:
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "model": model})
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.replies:
            return ""
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


class FakeSpeechService:
    """Stands in for ElevenLabsService."""

    def __init__(self, url: Optional[str] = "http://localhost:8000/ai-audio/clip.mp3", configured: bool = True):
        self.url = url
        self.configured = configured
        self.calls: List[tuple] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def synthesize(self, text: str, filename_prefix: str = "ai") -> Optional[str]:
        self.calls.append((text, filename_prefix))
        return self.url if self.configured else None


def stories_json(*titles: str, duration: int = 7) -> str:
    """A model reply carrying one story per title as a JSON array."""
    return json.dumps([
        {
            "title": title,
            "description": f"About {title}",
            "content": f"Once upon a time there was {title}.",
            "duration": duration,
        }
        for title in titles
    ])


def make_ai_story(title: str, collection_key: str = "mom-stories", **overrides) -> StoryModel:
    fields = dict(
        title=title,
        description="A story",
        content=f"The tale of {title}.",
        duration=8,
        age_range=AgeRange(min=3, max=7),
        theme="family",
        category="audio",
        is_ai_generated=True,
        generated_for_collection=collection_key,
    )
    fields.update(overrides)
    return StoryModel(**fields)


@pytest.fixture
def store() -> LocalStore:
    return LocalStore()


@pytest.fixture
def story_crud(store) -> StoryCRUD:
    return StoryCRUD(store)


@pytest.fixture
def child_crud(store) -> ChildCRUD:
    return ChildCRUD(store)
