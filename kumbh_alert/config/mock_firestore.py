"""
In-memory stand-in for the Firestore client.

Used when USE_MOCK_DB=true (local development without credentials) and by
the test suite. It implements the subset of the google-cloud-firestore
surface this codebase touches:

    db.collection(name).document(id).set/get/update(option=db.write_option(last_update_time=...))
    db.collection(name).where(field, op, value).order_by(field, direction).limit(n).offset(n).stream()
    db.collections()

Semantics follow Firestore where they matter to callers: `update` on a
missing document raises google.api_core NotFound, range filters and
order_by skip documents that lack the field, ArrayUnion appends only values
not already present, and a write option whose last_update_time no longer
matches the document raises FailedPrecondition. Update times are an opaque
per-document generation counter.

When a path is given, every write is flushed to a JSON snapshot and the
snapshot is loaded on startup.
"""

import copy
import json
import logging
import os
import threading
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core import exceptions as gcp_exceptions

logger = logging.getLogger(__name__)

ASCENDING = "ASCENDING"
DESCENDING = "DESCENDING"

_MISSING = object()


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if op == "==":
        return actual == expected
    if op == "!=":
        return actual != expected
    if op == "in":
        return actual in expected
    if op == "not-in":
        return actual not in expected
    if op == "array_contains":
        return isinstance(actual, list) and expected in actual
    if actual is None or expected is None:
        return False
    try:
        if op == "<":
            return actual < expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
    except TypeError:
        # Firestore never matches across value types
        return False
    raise ValueError(f"Unsupported operator: {op}")


class MockWriteOption:
    """Precondition returned by MockFirestore.write_option."""

    def __init__(self, last_update_time: Any):
        self.last_update_time = last_update_time


def _apply_update(document: Dict, data: Dict) -> None:
    for field, value in data.items():
        if isinstance(value, firestore.ArrayUnion):
            current = list(document.get(field) or [])
            for item in value.values:
                if item not in current:
                    current.append(copy.deepcopy(item))
            document[field] = current
        else:
            document[field] = copy.deepcopy(value)


class MockDocumentSnapshot:
    def __init__(self, reference: "MockDocumentReference", data: Optional[Dict], update_time: Any = None):
        self.reference = reference
        self.id = reference.id
        self._data = data
        self.update_time = update_time

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict]:
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field: str) -> Any:
        return (self._data or {}).get(field)


class MockDocumentReference:
    def __init__(self, client: "MockFirestore", collection_name: str, doc_id: str):
        self._client = client
        self._collection = collection_name
        self.id = doc_id

    @property
    def path(self) -> str:
        return f"{self._collection}/{self.id}"

    def get(self) -> MockDocumentSnapshot:
        with self._client._lock:
            data = self._client._docs(self._collection).get(self.id)
            update_time = self._client._version(self.path) if data is not None else None
            return MockDocumentSnapshot(self, copy.deepcopy(data), update_time)

    def set(self, data: Dict, merge: bool = False) -> None:
        with self._client._lock:
            docs = self._client._docs(self._collection)
            if merge and self.id in docs:
                _apply_update(docs[self.id], data)
            else:
                docs[self.id] = {}
                _apply_update(docs[self.id], data)
            self._client._touch(self.path)
            self._client._flush()

    def update(self, data: Dict, option: Optional[MockWriteOption] = None) -> None:
        with self._client._lock:
            docs = self._client._docs(self._collection)
            if self.id not in docs:
                raise gcp_exceptions.NotFound(f"No document to update: {self.path}")
            if option is not None and option.last_update_time != self._client._version(self.path):
                raise gcp_exceptions.FailedPrecondition(f"{self.path} was modified since it was read")
            _apply_update(docs[self.id], data)
            self._client._touch(self.path)
            self._client._flush()

    def delete(self) -> None:
        with self._client._lock:
            self._client._docs(self._collection).pop(self.id, None)
            self._client._touch(self.path)
            self._client._flush()


class MockQuery:
    def __init__(
        self,
        client: "MockFirestore",
        collection_name: str,
        filters: Optional[List[Tuple[str, str, Any]]] = None,
        orders: Optional[List[Tuple[str, str]]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ):
        self._client = client
        self._collection = collection_name
        self._filters = filters or []
        self._orders = orders or []
        self._limit = limit
        self._offset = offset

    def _copy(self, **overrides) -> "MockQuery":
        params = {
            "filters": list(self._filters),
            "orders": list(self._orders),
            "limit": self._limit,
            "offset": self._offset,
        }
        params.update(overrides)
        return MockQuery(self._client, self._collection, **params)

    def where(self, field_path: str, op_string: str, value: Any) -> "MockQuery":
        return self._copy(filters=self._filters + [(field_path, op_string, value)])

    def order_by(self, field_path: str, direction: str = ASCENDING) -> "MockQuery":
        return self._copy(orders=self._orders + [(field_path, direction)])

    def limit(self, count: int) -> "MockQuery":
        return self._copy(limit=count)

    def offset(self, num_to_skip: int) -> "MockQuery":
        return self._copy(offset=num_to_skip)

    def stream(self):
        with self._client._lock:
            items = [
                (doc_id, copy.deepcopy(data))
                for doc_id, data in self._client._docs(self._collection).items()
            ]

        for field, op, expected in self._filters:
            items = [
                (doc_id, data) for doc_id, data in items
                if data.get(field, _MISSING) is not _MISSING and _compare(op, data[field], expected)
            ]

        for field, direction in reversed(self._orders):
            items = [(doc_id, data) for doc_id, data in items if data.get(field) is not None]
            items.sort(key=lambda item: item[1][field], reverse=(direction == DESCENDING))

        items = items[self._offset:]
        if self._limit is not None:
            items = items[:self._limit]

        for doc_id, data in items:
            ref = MockDocumentReference(self._client, self._collection, doc_id)
            yield MockDocumentSnapshot(ref, data)

    def get(self) -> List[MockDocumentSnapshot]:
        return list(self.stream())


class MockCollectionReference(MockQuery):
    def __init__(self, client: "MockFirestore", collection_name: str):
        super().__init__(client, collection_name)
        self.id = collection_name

    def document(self, document_id: Optional[str] = None) -> MockDocumentReference:
        return MockDocumentReference(self._client, self._collection, document_id or uuid.uuid4().hex[:20])

    def add(self, data: Dict) -> Tuple[datetime, MockDocumentReference]:
        ref = self.document()
        ref.set(data)
        return datetime.utcnow(), ref


class MockFirestore:
    def __init__(self, path: Optional[str] = None):
        self._path = path
        self._lock = threading.RLock()
        self._data: Dict[str, Dict[str, Dict]] = {}
        self._versions: Dict[str, int] = {}
        self._generation = 0
        if path and os.path.exists(path):
            self._load()

    def collection(self, name: str) -> MockCollectionReference:
        return MockCollectionReference(self, name)

    def collections(self) -> List[MockCollectionReference]:
        with self._lock:
            return [MockCollectionReference(self, name) for name in self._data]

    def write_option(self, last_update_time: Any = None, **kwargs) -> MockWriteOption:
        return MockWriteOption(last_update_time)

    def _docs(self, collection_name: str) -> Dict[str, Dict]:
        return self._data.setdefault(collection_name, {})

    def _version(self, path: str) -> int:
        return self._versions.get(path, 0)

    def _touch(self, path: str) -> None:
        self._generation += 1
        self._versions[path] = self._generation

    def _load(self) -> None:
        with open(self._path, "r", encoding="utf-8") as f:
            self._data = json.load(f, object_hook=_decode_value)
        logger.info(f"[MOCK DB] Loaded {sum(len(d) for d in self._data.values())} documents from {self._path}")

    def _flush(self) -> None:
        if not self._path:
            return
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, default=_encode_value, indent=2)


def _encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"__datetime__": value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_value(obj: Dict) -> Any:
    if set(obj.keys()) == {"__datetime__"}:
        return datetime.fromisoformat(obj["__datetime__"])
    return obj


def get_mock_db(path: Optional[str] = None) -> MockFirestore:
    return MockFirestore(path)
