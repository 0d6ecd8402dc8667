"""Story endpoints: library browsing, lookup, playback events, ratings and story intake."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.crud.story import StoryCRUD
from app.dependencies import get_current_user, get_story_crud, get_story_lifecycle
from app.models.story import AgeRange, StoryCategory, StoryModel, StoryTheme
from app.services.ai.collections import CollectionRegistry
from app.services.ai.regeneration import StoryLifecycle
from app.utils.exceptions import NotFoundError, ValidationError
from app.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Content generated in the browser never reaches the store
CLIENT_SIDE_ID_PREFIXES = ("ai-", "mom-", "grandma-", "now-", "learn-", "generated-", "local-")


def _is_client_side_id(story_id: str) -> bool:
    return story_id.startswith(CLIENT_SIDE_ID_PREFIXES)


# Request Models
class RateStoryRequest(BaseModel):
    rating: float = Field(..., ge=1, le=5)


class StoryCreateRequest(BaseModel):
    """A hand-written library story."""
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    duration: int = Field(..., ge=1, le=60)
    age_range: AgeRange
    theme: StoryTheme
    category: StoryCategory
    thumbnail: str = "📚"


class AIStoryCreateRequest(BaseModel):
    """An AI story generated elsewhere and submitted for storage."""
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=500)
    content: str = Field(..., min_length=1)
    duration: int = Field(10, ge=1, le=60)
    age_range: AgeRange = Field(default_factory=lambda: AgeRange(min=3, max=7))
    theme: StoryTheme = StoryTheme.AI_GENERATED
    category: StoryCategory = StoryCategory.AUDIO
    thumbnail: str = "🤖"
    audio_url: Optional[str] = None
    generated_for_collection: str

    @field_validator("generated_for_collection")
    @classmethod
    def validate_collection(cls, v: str) -> str:
        if not CollectionRegistry.is_valid(v):
            raise ValueError(f"Unknown collection: {v}")
        return v


# Response Models
class StoryResponse(BaseModel):
    success: bool
    data: dict
    message: str


def _load_active_story(stories: StoryCRUD, story_id: str) -> StoryModel:
    story = stories.get_story(story_id)
    if story is None or not story.is_active:
        raise NotFoundError("Story not found", details={"story_id": story_id})
    return story


@router.get("", response_model=StoryResponse)
async def list_stories(
    theme: Optional[StoryTheme] = Query(None),
    category: Optional[StoryCategory] = Query(None),
    age: Optional[int] = Query(None, ge=0, le=18),
    sort: str = Query("popular", pattern="^(popular|newest|rating)$"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    stories: StoryCRUD = Depends(get_story_crud),
) -> StoryResponse:
    """
    Browse active stories with optional filtering and pagination.

    Args:
        theme: Filter by theme
        category: Filter by category
        age: Only stories suitable for this age
        sort: popular (plays), newest or rating
        page: Page number (1-indexed)
        page_size: Items per page
        stories: Story CRUD

    Returns:
        StoryResponse with the page of stories and pagination info
    """
    page_items, total = stories.list_active(
        theme=theme.value if theme else None,
        category=category.value if category else None,
        age=age,
        sort=sort,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return StoryResponse(
        success=True,
        data={
            "items": [s.to_response() for s in page_items],
            "total": total,
            "page": page,
            "page_size": page_size,
            "pages": (total + page_size - 1) // page_size,
        },
        message="Stories retrieved successfully",
    )


@router.get("/featured", response_model=StoryResponse)
async def featured_stories(
    age: Optional[int] = Query(None, ge=0, le=18),
    limit: int = Query(5, ge=1, le=20),
    stories: StoryCRUD = Depends(get_story_crud),
) -> StoryResponse:
    """Most played active stories, optionally for one age."""
    featured, _ = stories.list_active(age=age, sort="popular", limit=limit)
    return StoryResponse(
        success=True,
        data={"items": [s.to_response() for s in featured]},
        message="Featured stories retrieved successfully",
    )


@router.get("/themes/list", response_model=StoryResponse)
async def list_themes(stories: StoryCRUD = Depends(get_story_crud)) -> StoryResponse:
    """Themes that have at least one active story."""
    return StoryResponse(
        success=True,
        data={"themes": stories.distinct_active("theme")},
        message="Themes retrieved successfully",
    )


@router.get("/categories/list", response_model=StoryResponse)
async def list_categories(stories: StoryCRUD = Depends(get_story_crud)) -> StoryResponse:
    """Categories that have at least one active story."""
    return StoryResponse(
        success=True,
        data={"categories": stories.distinct_active("category")},
        message="Categories retrieved successfully",
    )


@router.post("", response_model=StoryResponse, status_code=status.HTTP_201_CREATED)
async def create_story(
    request: StoryCreateRequest,
    current_user: dict = Depends(get_current_user),
    stories: StoryCRUD = Depends(get_story_crud),
) -> StoryResponse:
    """Add a hand-written story to the library."""
    story = StoryModel(
        **request.model_dump(),
        is_ai_generated=False,
        is_active=True,
        created_by=current_user["uid"],
    )
    saved = stories.create_story(story)
    logger.info(f"Stored story {saved.id} by {saved.created_by}")

    return StoryResponse(
        success=True,
        data={"story": saved.to_response()},
        message="Story created successfully",
    )


@router.get("/{story_id}", response_model=StoryResponse)
async def get_story(
    story_id: str,
    stories: StoryCRUD = Depends(get_story_crud),
) -> StoryResponse:
    """Get a single active story."""
    story = _load_active_story(stories, story_id)
    return StoryResponse(
        success=True,
        data={"story": story.to_response()},
        message="Story retrieved successfully",
    )


@router.post("/{story_id}/play", response_model=StoryResponse)
async def play_story(
    story_id: str,
    stories: StoryCRUD = Depends(get_story_crud),
    lifecycle: StoryLifecycle = Depends(get_story_lifecycle),
) -> StoryResponse:
    """Record a play of a story."""
    if _is_client_side_id(story_id):
        return StoryResponse(
            success=True,
            data={"is_client_side_content": True},
            message="Client-side content; play not tracked",
        )

    story = _load_active_story(stories, story_id)
    plays = lifecycle.on_played(story)
    return StoryResponse(
        success=True,
        data={"total_plays": plays},
        message="Play tracked",
    )


@router.post("/{story_id}/complete", response_model=StoryResponse)
async def complete_story(
    story_id: str,
    stories: StoryCRUD = Depends(get_story_crud),
    lifecycle: StoryLifecycle = Depends(get_story_lifecycle),
) -> StoryResponse:
    """
    Record a completion.

    Completing an AI collection story retires it and queues a replacement
    in the background; the response does not wait for it.
    """
    if _is_client_side_id(story_id):
        return StoryResponse(
            success=True,
            data={"is_client_side_content": True},
            message="Client-side content; completion not tracked",
        )

    story = _load_active_story(stories, story_id)
    replacement = lifecycle.on_completed(story)
    return StoryResponse(
        success=True,
        data={
            "total_completions": story.stats.total_completions,
            "deactivated": not story.is_active,
            "replacement_scheduled": replacement is not None,
        },
        message="Completion tracked",
    )


@router.post("/{story_id}/rate", response_model=StoryResponse)
async def rate_story(
    story_id: str,
    request: RateStoryRequest,
    stories: StoryCRUD = Depends(get_story_crud),
    lifecycle: StoryLifecycle = Depends(get_story_lifecycle),
) -> StoryResponse:
    """Add a 1-5 rating to a story."""
    if _is_client_side_id(story_id):
        return StoryResponse(
            success=True,
            data={"is_client_side_content": True},
            message="Client-side content; rating not tracked",
        )

    story = _load_active_story(stories, story_id)
    lifecycle.add_rating(story, request.rating)
    return StoryResponse(
        success=True,
        data={
            "average_rating": story.stats.average_rating,
            "total_ratings": story.stats.total_ratings,
        },
        message="Rating added",
    )


@router.post("/from-ai", response_model=StoryResponse, status_code=status.HTTP_201_CREATED)
async def create_story_from_ai(
    request: AIStoryCreateRequest,
    current_user: dict = Depends(get_current_user),
    stories: StoryCRUD = Depends(get_story_crud),
) -> StoryResponse:
    """Store an AI story generated outside the replenishment flow."""
    try:
        story = StoryModel(
            **request.model_dump(),
            is_ai_generated=True,
            is_active=True,
            created_by=current_user["uid"],
        )
    except PydanticValidationError as e:
        raise ValidationError("Invalid story data", details={"errors": str(e)})

    saved = stories.create_story(story)
    logger.info(f"Stored AI story {saved.id} for {saved.generated_for_collection}")

    return StoryResponse(
        success=True,
        data={"story": saved.to_response()},
        message="Story created",
    )
