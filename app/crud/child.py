"""
Child CRUD Operations
Read access to child profiles for story personalisation.
"""

import logging
from typing import Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from app.crud.base import BaseCRUD
from app.models.child import DEFAULT_CHILD_AGE, DEFAULT_CHILD_NAME, ChildModel

logger = logging.getLogger(__name__)


class ChildCRUD(BaseCRUD[ChildModel]):
    """CRUD operations for child documents."""

    @property
    def collection_name(self) -> str:
        """Get collection name."""
        return "children"

    def get_child(self, child_id: str) -> Optional[ChildModel]:
        data = self.get_by_id(child_id)
        if data is None:
            return None
        return ChildModel.from_dict(data)

    def get_name_and_age(self, child_id: Optional[str]) -> Tuple[str, int]:
        """
        Resolve the name and age used to personalise prompts.

        Args:
            child_id: Optional child ID

        Returns:
            (name, age), falling back to ("friend", 5)
        """
        if not child_id:
            return DEFAULT_CHILD_NAME, DEFAULT_CHILD_AGE
        try:
            child = self.get_child(child_id)
        except (PydanticValidationError, ValueError) as e:
            logger.warning("Failed to read child %s: %s", child_id, e)
            return DEFAULT_CHILD_NAME, DEFAULT_CHILD_AGE
        if child is None:
            return DEFAULT_CHILD_NAME, DEFAULT_CHILD_AGE
        return child.name or DEFAULT_CHILD_NAME, child.age or DEFAULT_CHILD_AGE
