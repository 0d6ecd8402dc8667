"""
Child Models
Child profile fields the story features read.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

DEFAULT_CHILD_NAME = "friend"
DEFAULT_CHILD_AGE = 5


class ChildModel(BaseModel):
    """Child profile as stored in Firestore."""

    id: str = Field(description="Child ID")
    name: str = Field(default=DEFAULT_CHILD_NAME, min_length=1, max_length=50, description="Display name")
    age: int = Field(default=DEFAULT_CHILD_AGE, ge=0, le=18, description="Age in years")
    parent_id: Optional[str] = Field(default=None, description="Owning parent ID")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChildModel":
        """Create child from Firestore dictionary."""
        return cls.model_validate(data)
