"""
Story Models
Represents story documents stored in Firestore.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from app.services.ai.collections import CollectionRegistry

MIN_CHILD_AGE = 2
MAX_CHILD_AGE = 12


class StoryTheme(str, Enum):
    """Story theme enumeration."""
    KINDNESS = "kindness"
    COURAGE = "courage"
    FRIENDSHIP = "friendship"
    LEARNING = "learning"
    CREATIVITY = "creativity"
    NATURE = "nature"
    FAMILY = "family"
    ADVENTURE = "adventure"
    SCIENCE = "science"
    AI_GENERATED = "ai_generated"


class StoryCategory(str, Enum):
    """Story presentation category."""
    INTERACTIVE = "interactive"
    AUDIO = "audio"
    VIDEO = "video"
    BEDTIME = "bedtime"
    EDUCATIONAL = "educational"


class AgeRange(BaseModel):
    """Inclusive age range a story is written for."""

    min: int = Field(ge=MIN_CHILD_AGE, le=MAX_CHILD_AGE, description="Minimum age")
    max: int = Field(ge=MIN_CHILD_AGE, le=MAX_CHILD_AGE, description="Maximum age")

    @model_validator(mode="after")
    def check_order(self) -> "AgeRange":
        """Ensure min does not exceed max."""
        if self.min > self.max:
            raise ValueError("ageRange.min must be less than or equal to ageRange.max")
        return self

    @classmethod
    def for_child_age(cls, child_age: int) -> "AgeRange":
        """Build the two-years-either-side range used for generated stories."""
        low = max(MIN_CHILD_AGE, child_age - 2)
        high = min(MAX_CHILD_AGE, child_age + 2)
        # Ages far outside the supported band still yield a valid range
        low = min(low, MAX_CHILD_AGE)
        high = max(high, low)
        return cls(min=low, max=high)


class StoryStats(BaseModel):
    """Engagement counters for a story."""

    total_plays: int = Field(default=0, ge=0, description="Number of plays")
    total_completions: int = Field(default=0, ge=0, description="Number of completions")
    average_rating: float = Field(default=0.0, ge=0, le=5, description="Running mean rating")
    total_ratings: int = Field(default=0, ge=0, description="Number of ratings")
    last_played: Optional[datetime] = Field(default=None, description="Last play timestamp")

    def record_play(self) -> int:
        self.total_plays += 1
        self.last_played = datetime.utcnow()
        return self.total_plays

    def record_completion(self) -> int:
        self.total_completions += 1
        return self.total_completions

    def add_rating(self, rating: float) -> float:
        """
        Fold a rating into the running mean.

        Args:
            rating: Rating between 1 and 5

        Returns:
            Updated average rating

        Raises:
            ValueError: If rating is out of range
        """
        if not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")
        current_total = self.average_rating * self.total_ratings
        self.total_ratings += 1
        self.average_rating = (current_total + rating) / self.total_ratings
        return self.average_rating


class StoryModel(BaseModel):
    """Story model for both hand-authored and AI-generated stories."""

    id: Optional[str] = Field(default=None, description="Unique story ID (assigned by the store)")
    title: str = Field(min_length=1, max_length=100, description="Story title")
    description: str = Field(default="", max_length=500, description="Story description")
    content: str = Field(min_length=1, description="Story body")
    duration: int = Field(ge=1, le=60, description="Duration in minutes")
    age_range: AgeRange = Field(description="Target age range")
    theme: StoryTheme = Field(description="Story theme")
    category: StoryCategory = Field(description="Presentation category")
    thumbnail: str = Field(default="📚", description="Thumbnail glyph")
    is_ai_generated: bool = Field(default=False, description="Whether the story was AI-generated")
    generated_for_collection: Optional[str] = Field(
        default=None, description="Collection key an AI story was generated for"
    )
    is_active: bool = Field(default=True, description="Soft-delete marker")
    audio_pending: bool = Field(default=False, description="Speech synthesis deferred or failed")
    audio_url: Optional[str] = Field(default=None, description="URL to synthesized audio")
    stats: StoryStats = Field(default_factory=StoryStats, description="Engagement stats")
    created_by: Optional[str] = Field(default=None, description="Authoring parent ID")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(default=None, description="Last update timestamp")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> Any:
        """Trim surrounding whitespace from titles."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("generated_for_collection")
    @classmethod
    def validate_collection(cls, v: Optional[str]) -> Optional[str]:
        """Only registered collection keys may be referenced."""
        if v is not None and not CollectionRegistry.is_valid(v):
            raise ValueError(f"Unknown collection: {v}")
        return v

    @model_validator(mode="after")
    def check_provenance(self) -> "StoryModel":
        """AI-generated stories must name the collection they belong to."""
        if self.is_ai_generated and not self.generated_for_collection:
            raise ValueError("AI-generated stories require generated_for_collection")
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert story to dictionary for Firestore storage."""
        data = self.model_dump()
        data["theme"] = self.theme.value
        data["category"] = self.category.value
        data.pop("id", None)
        return data

    def to_response(self) -> Dict[str, Any]:
        """JSON-safe representation for API responses."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoryModel":
        """Create story from Firestore dictionary."""
        return cls.model_validate(data)
