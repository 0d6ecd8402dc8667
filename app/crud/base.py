"""
Base CRUD Class
Base class for Firestore CRUD operations.

The same code drives a ``google.cloud.firestore.Client`` in production and
the file-backed ``LocalStore`` in local mode; both expose the
collection/document/where/order_by/limit surface used here.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from google.cloud.firestore import Query

T = TypeVar("T")


class BaseCRUD(ABC, Generic[T]):
    """
    Base CRUD class for Firestore operations.

    Generic base class for single-document reads, writes and filtered queries.
    """

    def __init__(self, db: Any):
        """
        Initialize CRUD with a Firestore-compatible client.

        Args:
            db: Firestore client or LocalStore instance
        """
        self.db = db

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Get collection name. Must be implemented by subclass."""
        pass

    def get_collection(self) -> Any:
        """
        Get Firestore collection reference.

        Returns:
            Firestore collection reference
        """
        return self.db.collection(self.collection_name)

    def _query(self, filters: Optional[List[tuple]] = None) -> Any:
        query = self.get_collection()
        if filters:
            for field, operator, value in filters:
                query = query.where(field, operator, value)
        return query

    def create(self, data: Dict[str, Any]) -> str:
        """
        Create a new document.

        Args:
            data: Document data dictionary

        Returns:
            Created document ID
        """
        data.setdefault("created_at", datetime.utcnow())
        doc_ref = self.get_collection().document()
        doc_ref.set(data)
        return doc_ref.id

    def get_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Get document by ID.

        Args:
            doc_id: Document ID

        Returns:
            Document data or None if not found
        """
        if not doc_id:
            return None
        doc = self.get_collection().document(doc_id).get()
        if doc.exists:
            data = doc.to_dict()
            data["id"] = doc.id
            return data
        return None

    def update(self, doc_id: str, data: Dict[str, Any]) -> bool:
        """
        Update a document.

        Args:
            doc_id: Document ID
            data: Fields to update

        Returns:
            True if successful, False if document not found
        """
        if not self.exists(doc_id):
            return False
        data["updated_at"] = datetime.utcnow()
        self.get_collection().document(doc_id).update(data)
        return True

    def find(
        self,
        filters: Optional[List[tuple]] = None,
        order_by: Optional[str] = None,
        direction: str = "ASCENDING",
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Find documents matching filters.

        Args:
            filters: List of (field, operator, value) tuples for filtering
            order_by: Field to order results by
            direction: Sort direction (ASCENDING or DESCENDING)
            limit: Maximum number of documents

        Returns:
            Matching documents with their ``id`` populated
        """
        query = self._query(filters)

        if order_by:
            direction_enum = Query.DESCENDING if direction == "DESCENDING" else Query.ASCENDING
            query = query.order_by(order_by, direction=direction_enum)

        if limit:
            query = query.limit(limit)

        items = []
        for doc in query.get():
            data = doc.to_dict()
            data["id"] = doc.id
            items.append(data)
        return items

    def find_one(self, filters: Optional[List[tuple]] = None) -> Optional[Dict[str, Any]]:
        """Return the first document matching filters, or None."""
        items = self.find(filters=filters, limit=1)
        return items[0] if items else None

    def count(self, filters: Optional[List[tuple]] = None) -> int:
        """
        Count documents matching filters.

        Args:
            filters: List of (field, operator, value) tuples for filtering

        Returns:
            Count of matching documents
        """
        return len(self._query(filters).get())

    def exists(self, doc_id: str) -> bool:
        """
        Check if document exists.

        Args:
            doc_id: Document ID

        Returns:
            True if document exists
        """
        if not doc_id:
            return False
        doc = self.get_collection().document(doc_id).get()
        return doc.exists
