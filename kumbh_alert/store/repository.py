"""
Entity Store - thin repository over one Firestore collection.

Each entity kind gets its own RecordStore instance; there is no per-entity
subclassing. Registrations are exposed through AppendOnlyStore, which
simply does not carry an update capability.

Contract:
- create(fields) -> record
- get_by_id(id) -> record | None
- query(filters) -> records, newest first
- count(filters) -> int
- get_versioned(id) -> (record | None, version)
- update(id, partial, expected_version=None) -> updated record (NotFound if
  the id is absent, StaleRecord if expected_version no longer matches)
- append(id, field, values) -> updated record, values added server-side

Filters are conjunctive. Keys are field names with an optional operator
suffix: `status` (equality), `registered_at__gte`, `registered_at__lte`,
`status__in`. Filters whose value is None are ignored so callers can pass
optional query parameters straight through.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from firebase_admin import firestore
from google.api_core import exceptions as gcp_exceptions

from kumbh_alert.config.firebase import get_db
from kumbh_alert.core.errors import AlertHubError, NotFound, StaleRecord, StoreTimeout, StoreUnavailable
from kumbh_alert.utils.firestore_helpers import to_datetime, utc_now, where_filter

logger = logging.getLogger(__name__)

FILTER_OPERATORS = {
    "gte": ">=",
    "lte": "<=",
    "gt": ">",
    "lt": "<",
    "in": "in",
    "ne": "!=",
}


def parse_filters(filters: Optional[Dict[str, Any]]) -> List[Tuple[str, str, Any]]:
    """Translate `{"field__op": value}` into Firestore (field, op, value) triples."""
    clauses = []
    for key, value in (filters or {}).items():
        if value is None:
            continue
        field, _, suffix = key.partition("__")
        if suffix:
            if suffix not in FILTER_OPERATORS:
                raise ValueError(f"Unsupported filter operator: {suffix}")
            clauses.append((field, FILTER_OPERATORS[suffix], value))
        else:
            clauses.append((field, "==", value))
    return clauses


@contextmanager
def store_errors(operation: str, collection: str):
    """Map client library failures onto the domain error taxonomy."""
    try:
        yield
    except AlertHubError:
        raise
    except gcp_exceptions.NotFound as e:
        raise NotFound(f"{collection}: record not found during {operation}") from e
    except gcp_exceptions.FailedPrecondition as e:
        logger.warning(f"Store {operation} on {collection} lost a write race: {e}")
        raise StaleRecord(f"{collection}: record changed during {operation}") from e
    except gcp_exceptions.DeadlineExceeded as e:
        logger.error(f"Store {operation} on {collection} timed out: {e}")
        raise StoreTimeout(f"{collection}: {operation} timed out") from e
    except gcp_exceptions.GoogleAPIError as e:
        logger.error(f"Store {operation} on {collection} failed: {e}", exc_info=True)
        raise StoreUnavailable(f"{collection}: {operation} failed, database unreachable") from e


class RecordStore:
    """CRUD and filtered-query access over a single collection."""

    def __init__(self, collection_name: str, sort_field: str = "created_at"):
        self.collection_name = collection_name
        self.sort_field = sort_field

    @property
    def db(self):
        try:
            return get_db()
        except RuntimeError as e:
            logger.error(f"Database unavailable for {self.collection_name}: {e}")
            raise StoreUnavailable(str(e)) from e

    @property
    def collection(self):
        return self.db.collection(self.collection_name)

    def _to_record(self, snapshot) -> Dict:
        data = snapshot.to_dict() or {}
        record = {key: to_datetime(value) for key, value in data.items()}
        record["id"] = snapshot.id
        return record

    def create(self, fields: Dict[str, Any]) -> Dict:
        with store_errors("create", self.collection_name):
            doc_ref = self.collection.document()
            data = dict(fields)
            data["id"] = doc_ref.id
            data.setdefault(self.sort_field, utc_now())
            doc_ref.set(data)
            logger.info(f"Created {self.collection_name}/{doc_ref.id}")
            return self._to_record(doc_ref.get())

    def get_by_id(self, record_id: str) -> Optional[Dict]:
        if not record_id or not isinstance(record_id, str):
            return None
        with store_errors("get", self.collection_name):
            snapshot = self.collection.document(record_id).get()
            if not snapshot.exists:
                return None
            return self._to_record(snapshot)

    def _build_query(self, filters: Optional[Dict[str, Any]]):
        query = self.collection
        for field, op, value in parse_filters(filters):
            query = where_filter(query, field, op, value)
        return query

    def query(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict]:
        with store_errors("query", self.collection_name):
            query = self._build_query(filters).order_by(
                self.sort_field, direction=firestore.Query.DESCENDING
            )
            if offset:
                query = query.offset(offset)
            if limit is not None:
                if limit <= 0:
                    return []
                query = query.limit(limit)
            return [self._to_record(doc) for doc in query.stream()]

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        with store_errors("count", self.collection_name):
            return len(list(self._build_query(filters).stream()))

    def get_versioned(self, record_id: str) -> Tuple[Optional[Dict], Any]:
        """
        Read a record together with its last update time.

        The version is opaque; hand it back to update(expected_version=...)
        to make that write conditional on nothing having changed since.
        """
        if not record_id or not isinstance(record_id, str):
            return None, None
        with store_errors("get", self.collection_name):
            snapshot = self.collection.document(record_id).get()
            if not snapshot.exists:
                return None, None
            return self._to_record(snapshot), snapshot.update_time

    def update(self, record_id: str, fields: Dict[str, Any], expected_version: Any = None) -> Dict:
        """
        Apply a partial update and return the record as stored afterwards.

        An empty field set is a no-op that returns the current record.
        With expected_version the write only lands if the record is still
        at that version, otherwise StaleRecord is raised.
        """
        if not fields:
            current = self.get_by_id(record_id)
            if current is None:
                raise NotFound(f"{self.collection_name}/{record_id} not found")
            return current

        with store_errors("update", self.collection_name):
            doc_ref = self.collection.document(record_id)
            if expected_version is not None:
                doc_ref.update(dict(fields), option=self.db.write_option(last_update_time=expected_version))
            else:
                doc_ref.update(dict(fields))
            snapshot = doc_ref.get()
            if not snapshot.exists:
                raise NotFound(f"{self.collection_name}/{record_id} disappeared during update")
            return self._to_record(snapshot)

    def append(self, record_id: str, field: str, values: List[Any]) -> Dict:
        """Add values to an array field server-side, without reading it first."""
        return self.update(record_id, {field: firestore.ArrayUnion(list(values))})


class AppendOnlyStore:
    """Create and read access only. Records behind it are never updated."""

    def __init__(self, store: RecordStore):
        self._store = store
        self.collection_name = store.collection_name
        self.sort_field = store.sort_field

    def create(self, fields: Dict[str, Any]) -> Dict:
        return self._store.create(fields)

    def get_by_id(self, record_id: str) -> Optional[Dict]:
        return self._store.get_by_id(record_id)

    def query(self, filters: Optional[Dict[str, Any]] = None, limit: Optional[int] = None, offset: int = 0) -> List[Dict]:
        return self._store.query(filters, limit=limit, offset=offset)

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return self._store.count(filters)
