"""
File-backed data store that persists across process restarts.
Replaces Firestore with a JSON-file-backed dict store.
Used when no Firebase credentials are found.
"""

import json
import logging
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

PERSISTED_COLLECTIONS = ("stories", "children")


def _json_serial(obj):
    """JSON serializer for objects not serializable by default."""
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"Type {type(obj)} not serializable")


def _sort_value(value):
    """Normalise values so freshly written datetimes sort with reloaded ISO strings."""
    if isinstance(value, datetime):
        return value.isoformat()
    if value is None:
        return ""
    return value


class LocalStore:
    """File-backed data store that mimics Firestore operations.

    Pass ``data_dir=None`` for a purely in-memory store.
    """

    def __init__(self, data_dir: Optional[str] = None):
        self.collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()

        self._data_dir = Path(data_dir) if data_dir else None
        if self._data_dir is not None:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            self._load_data()

    def _load_data(self):
        """Load persisted collections from the data dir."""
        for coll_name in PERSISTED_COLLECTIONS:
            persistent_path = self._data_dir / f"{coll_name}.json"
            if not persistent_path.exists():
                self.collections.setdefault(coll_name, {})
                continue
            try:
                with open(persistent_path) as f:
                    items = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Could not load %s: %s", persistent_path, e)
                items = []
            self.collections[coll_name] = {
                item.get("id", str(uuid.uuid4())): item for item in items
            }

    def _persist_collection(self, name: str):
        """Write a collection to disk as JSON."""
        path = self._data_dir / f"{name}.json"
        items = list(self.collections.get(name, {}).values())
        with open(path, "w") as f:
            json.dump(items, f, indent=2, default=_json_serial)

    def _persist(self, collection_name: str):
        """Thread-safe persist after write operations."""
        if self._data_dir is None:
            return
        with self._lock:
            try:
                self._persist_collection(collection_name)
            except (OSError, TypeError) as e:
                logger.warning("Failed to persist collection %s: %s", collection_name, e)

    def collection(self, name: str) -> "CollectionRef":
        if name not in self.collections:
            self.collections[name] = {}
        return CollectionRef(self, name)


class CollectionRef:
    """Mimics Firestore collection reference."""

    def __init__(self, store: LocalStore, name: str):
        self._store = store
        self._data = store.collections[name]
        self._name = name
        self._filters = []
        self._order_by = None
        self._limit_val = None

    def _copy(self) -> "CollectionRef":
        new_ref = CollectionRef(self._store, self._name)
        new_ref._filters = list(self._filters)
        new_ref._order_by = self._order_by
        new_ref._limit_val = self._limit_val
        return new_ref

    def document(self, doc_id: Optional[str] = None) -> "DocumentRef":
        return DocumentRef(self._store, self._data, self._name, doc_id or uuid.uuid4().hex)

    def where(self, field: str, op: str, value) -> "CollectionRef":
        new_ref = self._copy()
        new_ref._filters.append((field, op, value))
        return new_ref

    def order_by(self, field: str, direction: str = "ASCENDING") -> "CollectionRef":
        new_ref = self._copy()
        new_ref._order_by = (field, direction)
        return new_ref

    def limit(self, count: int) -> "CollectionRef":
        new_ref = self._copy()
        new_ref._limit_val = count
        return new_ref

    def get(self) -> list["DocumentSnapshot"]:
        results = list(self._data.values())

        # Apply filters
        for field, op, value in self._filters:
            filtered = []
            for doc in results:
                doc_val = doc.get(field)
                if value is None:
                    # Firestore treats == None / != None as IS_NULL / IS_NOT_NULL
                    if (op == "==" and doc_val is None) or (op == "!=" and doc_val is not None):
                        filtered.append(doc)
                    continue
                if doc_val is None:
                    continue
                if op == "==" and doc_val == value:
                    filtered.append(doc)
                elif op == "!=" and doc_val != value:
                    filtered.append(doc)
                elif op == ">=" and doc_val >= value:
                    filtered.append(doc)
                elif op == "<=" and doc_val <= value:
                    filtered.append(doc)
                elif op == ">" and doc_val > value:
                    filtered.append(doc)
                elif op == "<" and doc_val < value:
                    filtered.append(doc)
            results = filtered

        # Apply ordering
        if self._order_by:
            field, direction = self._order_by
            reverse = direction == "DESCENDING"
            results.sort(
                key=lambda d: _sort_value(d.get(field)),
                reverse=reverse,
            )

        # Apply limit
        if self._limit_val:
            results = results[: self._limit_val]

        return [DocumentSnapshot(doc.get("id", ""), doc) for doc in results]


class DocumentRef:
    """Mimics Firestore document reference."""

    def __init__(self, store: LocalStore, collection_data: dict, collection_name: str, doc_id: str):
        self._store = store
        self._data = collection_data
        self._name = collection_name
        self._id = doc_id

    @property
    def id(self):
        return self._id

    def get(self) -> "DocumentSnapshot":
        doc = self._data.get(self._id, None)
        return DocumentSnapshot(self._id, doc)

    def set(self, data: dict, merge: bool = False):
        if merge and self._id in self._data:
            self._data[self._id].update(data)
        else:
            data = dict(data)
            data["id"] = self._id
            self._data[self._id] = data
        self._store._persist(self._name)

    def update(self, data: dict):
        if self._id not in self._data:
            raise KeyError(f"No document to update: {self._name}/{self._id}")
        self._data[self._id].update(data)
        self._store._persist(self._name)


class DocumentSnapshot:
    """Mimics Firestore document snapshot."""

    def __init__(self, doc_id: str, data: Optional[dict]):
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[dict]:
        return dict(self._data) if self._data is not None else None

    def get(self, field: str, default=None):
        if self._data is None:
            return default
        return self._data.get(field, default)


# ── Singleton ────────────────────────────────────────────────────

_local_store: Optional[LocalStore] = None


def get_local_store(data_dir: Optional[str] = None) -> LocalStore:
    """Get or create the singleton LocalStore instance."""
    global _local_store
    if _local_store is None:
        _local_store = LocalStore(data_dir)
    return _local_store
