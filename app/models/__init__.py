"""
StoryNest Models
Firestore document representations and data models.
"""

from app.models.story import AgeRange, StoryCategory, StoryModel, StoryStats, StoryTheme
from app.models.child import ChildModel

__all__ = [
    "AgeRange",
    "StoryCategory",
    "StoryModel",
    "StoryStats",
    "StoryTheme",
    "ChildModel",
]
