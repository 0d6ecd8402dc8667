"""AI collection endpoints: category stories, regeneration, initialization."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from app.config import Settings, get_settings
from app.crud.child import ChildCRUD
from app.crud.story import StoryCRUD
from app.dependencies import (
    get_child_crud,
    get_current_user,
    get_groq_service,
    get_replenishment_engine,
    get_speech_service,
    get_story_crud,
)
from app.services.ai.collections import CollectionRegistry
from app.services.ai.groq_service import GroqService
from app.services.ai.prompts import COACH_FALLBACK_RESPONSE, build_coach_messages
from app.services.ai.replenishment import ReplenishmentEngine
from app.services.tts.elevenlabs_service import ElevenLabsService
from app.utils.exceptions import ContentGenerationError, InvalidCollectionError, TTSError
from app.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()

COACH_MAX_TOKENS = 700


# Request Models
class RegenerateStoryRequest(BaseModel):
    """Request to retire a story and generate its replacement."""
    story_id: str = Field(..., min_length=1)
    collection_key: str = Field(..., min_length=1)
    child_id: Optional[str] = None


class InitializeCollectionsRequest(BaseModel):
    child_id: Optional[str] = None


class CoachRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=2000)


class TTSRequest(BaseModel):
    text: str = Field(..., min_length=1)
    filename_prefix: str = Field("ai-tts", min_length=1, max_length=64)


# Response Models
class AIResponse(BaseModel):
    """Response model for AI endpoints."""
    success: bool
    data: dict
    message: str


@router.get("/collections", response_model=AIResponse)
async def list_collections() -> AIResponse:
    """List the registered story collections."""
    collections = CollectionRegistry.get_collections_as_dicts()
    return AIResponse(
        success=True,
        data={"collections": collections, "total": len(collections)},
        message="Collections retrieved successfully",
    )


@router.get("/category-stories/{collection_key}", response_model=AIResponse)
async def get_category_stories(
    collection_key: str,
    child_id: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    stories: StoryCRUD = Depends(get_story_crud),
    children: ChildCRUD = Depends(get_child_crud),
    engine: ReplenishmentEngine = Depends(get_replenishment_engine),
) -> AIResponse:
    """
    Get the active AI stories of a collection.

    Generates once, synchronously, when the collection is empty.
    """
    collection = CollectionRegistry.describe(collection_key)
    if collection is None:
        raise InvalidCollectionError(collection_key)

    child_name, child_age = children.get_name_and_age(child_id)
    target = settings.target_per_collection

    items = stories.list_active_ai(collection_key, limit=target)

    if not items:
        try:
            await engine.replenish(collection_key, child_name, child_age, target)
        except Exception as e:
            logger.error(f"Generation failed for {collection_key}: {str(e)}")
        items = stories.list_active_ai(collection_key, limit=target)

    return AIResponse(
        success=True,
        data={
            "collection": collection.to_dict(),
            "stories": [s.to_response() for s in items],
            "child_name": child_name,
            "child_age": child_age,
        },
        message="Collection stories retrieved successfully",
    )


@router.post("/regenerate-story", response_model=AIResponse)
async def regenerate_story(
    request: RegenerateStoryRequest,
    current_user: dict = Depends(get_current_user),
    stories: StoryCRUD = Depends(get_story_crud),
    children: ChildCRUD = Depends(get_child_crud),
    engine: ReplenishmentEngine = Depends(get_replenishment_engine),
) -> AIResponse:
    """Deactivate a story and synchronously generate one replacement."""
    if not CollectionRegistry.is_valid(request.collection_key):
        raise InvalidCollectionError(request.collection_key)

    try:
        if stories.deactivate(request.story_id):
            logger.info(f"Deactivated story {request.story_id} for regeneration")
    except Exception as e:
        logger.warning(f"Unable to deactivate old story {request.story_id}: {str(e)}")

    child_name, child_age = children.get_name_and_age(request.child_id)

    try:
        new_stories = await engine.replenish(request.collection_key, child_name, child_age, 1)
    except InvalidCollectionError:
        raise
    except Exception as e:
        logger.error(f"Regenerate error: {str(e)}")
        raise ContentGenerationError("Failed to generate replacement")

    new_story = new_stories[0].to_response() if new_stories else None
    return AIResponse(
        success=True,
        data={"new_story": new_story},
        message="New story generated" if new_story else "No replacement story was generated",
    )


@router.post("/initialize-categories", response_model=AIResponse)
async def initialize_categories(
    request: InitializeCollectionsRequest,
    current_user: dict = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    stories: StoryCRUD = Depends(get_story_crud),
    children: ChildCRUD = Depends(get_child_crud),
    engine: ReplenishmentEngine = Depends(get_replenishment_engine),
) -> AIResponse:
    """Fill every registered collection up to its target."""
    child_name, child_age = children.get_name_and_age(request.child_id)
    target = settings.target_per_collection
    results = {}

    for key in CollectionRegistry.keys():
        try:
            existing = stories.count_active_ai(key)
            if existing >= target:
                results[key] = {"generated": 0, "total": existing, "message": "Already initialized"}
                continue

            generated = await engine.replenish(key, child_name, child_age, target)
            results[key] = {"generated": len(generated), "total": existing + len(generated)}
        except Exception as e:
            logger.error(f"Initialize failed for {key}: {str(e)}")
            results[key] = {"error": str(e)}

    return AIResponse(success=True, data=results, message="Categories initialized")


@router.post("/coach", response_model=AIResponse)
async def parenting_coach(
    request: CoachRequest,
    current_user: dict = Depends(get_current_user),
    text_service: GroqService = Depends(get_groq_service),
) -> AIResponse:
    """Answer a parenting question."""
    answer = ""
    if text_service.is_configured:
        answer = await text_service.generate_chat(
            build_coach_messages(request.question),
            max_tokens=COACH_MAX_TOKENS,
        )

    return AIResponse(
        success=True,
        data={
            "question": request.question,
            "response": answer or COACH_FALLBACK_RESPONSE,
            "timestamp": datetime.utcnow().isoformat(),
            "provider": "groq" if text_service.is_configured else "mock",
        },
        message="Coach response generated",
    )


@router.post("/tts", response_model=AIResponse, status_code=status.HTTP_200_OK)
async def synthesize_speech(
    request: TTSRequest,
    current_user: dict = Depends(get_current_user),
    speech_service: ElevenLabsService = Depends(get_speech_service),
) -> AIResponse:
    """Synthesize arbitrary text to an mp3 and return its URL."""
    audio_url = await speech_service.synthesize(request.text, request.filename_prefix)
    if not audio_url:
        raise TTSError("TTS failed or ElevenLabs API key missing")

    return AIResponse(
        success=True,
        data={"audio_url": audio_url, "timestamp": datetime.utcnow().isoformat()},
        message="Audio generated successfully",
    )
