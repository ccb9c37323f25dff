"""
Purpose: In-process storage engine.
What it does:
Implements storage.base with plain dicts so the dispatch core runs (and is tested)
without a database server.

Atomicity: each collection owns one lock, held for the whole of a single
primitive (match + write in find_one_and_update). That lock is the engine's
equivalent of MongoDB's document-level atomicity; nothing above this module
takes locks. Lock acquisition is bounded, and a timeout surfaces as
TransientStoreError just like an unreachable database would.

Geospatial queries: bounding-box pre-filter, then exact haversine distance.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from core.errors import TransientStoreError, ValidationError
from geo.distance import bounding_box, haversine_meters
from geo.point import GeoPoint

from .base import (
    SUPPORTED_QUERY_OPERATORS,
    SUPPORTED_UPDATE_OPERATORS,
    Document,
    DocumentCollection,
    DocumentStore,
    Query,
    SortSpec,
    Update,
    new_id,
)

logger = logging.getLogger(__name__)

_MISSING = object()

DEFAULT_LOCK_TIMEOUT_SECONDS = 5.0


# ---- document helpers ----

def get_path(document: Document, path: str) -> Any:
    """Resolve a dotted path ("pickup.geo") or return _MISSING."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def set_path(document: Document, path: str, value: Any) -> None:
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def _equals(actual: Any, expected: Any) -> bool:
    if actual is _MISSING:
        return expected is None
    if isinstance(actual, list) and not isinstance(expected, list):
        return expected in actual
    return actual == expected


def _matches_condition(actual: Any, condition: Any) -> bool:
    is_operator_dict = isinstance(condition, dict) and condition and all(key.startswith("$") for key in condition)
    if not is_operator_dict:
        return _equals(actual, condition)

    for operator, operand in condition.items():
        if operator not in SUPPORTED_QUERY_OPERATORS:
            raise ValidationError(f"unsupported query operator {operator}", field="query")
        if operator == "$ne" and _equals(actual, operand):
            return False
        if operator == "$in" and not any(_equals(actual, candidate) for candidate in operand):
            return False
    return True


def matches(document: Document, query: Optional[Query]) -> bool:
    if not query:
        return True
    return all(_matches_condition(get_path(document, path), condition) for path, condition in query.items())


def apply_update(document: Document, update: Update, *, inserting: bool) -> None:
    for operator in update:
        if operator not in SUPPORTED_UPDATE_OPERATORS:
            raise ValidationError(f"unsupported update operator {operator}", field="update")

    for path, value in update.get("$set", {}).items():
        set_path(document, path, copy.deepcopy(value))

    if inserting:
        for path, value in update.get("$setOnInsert", {}).items():
            set_path(document, path, copy.deepcopy(value))

    for path, value in update.get("$addToSet", {}).items():
        current = get_path(document, path)
        if current is _MISSING or current is None:
            current = []
            set_path(document, path, current)
        if value not in current:
            current.append(copy.deepcopy(value))


def _seed_from_query(query: Query) -> Document:
    """Upserts start from the equality parts of the query, like MongoDB does."""
    seed: Document = {}
    for path, condition in query.items():
        if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
            continue
        set_path(seed, path, copy.deepcopy(condition))
    return seed


def _sort_documents(documents: List[Document], sort: SortSpec) -> List[Document]:
    ordered = list(documents)
    # stable sorts applied from the least significant key up
    for path, direction in reversed(list(sort)):
        def key(document, path=path):
            value = get_path(document, path)
            value = None if value is _MISSING else value
            return (value is not None, value)
        ordered.sort(key=key, reverse=direction < 0)
    return ordered


class InMemoryCollection(DocumentCollection):
    """
    One collection of documents held in a dict keyed by "_id".
    Documents are deep-copied on the way in and out so callers never alias stored state.
    """

    def __init__(self, name: str, lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self.name = name
        self.lock_timeout = lock_timeout
        self._documents: Dict[str, Document] = {}
        self._lock = threading.Lock()
        self._indexes: List[Tuple[Tuple[str, int], ...]] = []
        # (key paths, sparse) of every unique index
        self._unique_indexes: List[Tuple[Tuple[str, ...], bool]] = []
        self._geo_fields: List[str] = []

    # --- locking ---

    def _acquire(self, operation: str) -> None:
        if not self._lock.acquire(timeout=self.lock_timeout):
            logger.error(f"{self.name}.{operation} timed out waiting {self.lock_timeout}s for the collection lock")
            raise TransientStoreError(f"{self.name}.{operation} timed out")

    # --- primitives ---

    def insert_one(self, document: Document) -> Document:
        stored = copy.deepcopy(document)
        stored.setdefault("_id", new_id())

        self._acquire("insert_one")
        try:
            if stored["_id"] in self._documents:
                raise ValidationError(f"duplicate _id {stored['_id']}", field="_id")
            self._check_unique(stored)
            self._documents[stored["_id"]] = stored
        finally:
            self._lock.release()
        return copy.deepcopy(stored)

    def find_one(self, query: Query) -> Optional[Document]:
        self._acquire("find_one")
        try:
            found = self._first_match(query)
            return copy.deepcopy(found) if found is not None else None
        finally:
            self._lock.release()

    def find(self, query: Query, *, sort: Optional[SortSpec] = None, limit: Optional[int] = None) -> List[Document]:
        self._acquire("find")
        try:
            found = [copy.deepcopy(document) for document in self._documents.values() if matches(document, query)]
        finally:
            self._lock.release()

        if sort:
            found = _sort_documents(found, sort)
        if limit:
            found = found[:limit]
        return found

    def find_one_and_update(self, query: Query, update: Update, *, upsert: bool = False) -> Optional[Document]:
        self._acquire("find_one_and_update")
        try:
            target = self._first_match(query)
            if target is not None:
                # apply to a scratch copy so a bad update leaves the stored document untouched
                updated = copy.deepcopy(target)
                apply_update(updated, update, inserting=False)
                self._check_unique(updated)
                self._documents[updated["_id"]] = updated
                return copy.deepcopy(updated)

            if not upsert:
                return None

            created = _seed_from_query(query)
            apply_update(created, update, inserting=True)
            created.setdefault("_id", new_id())
            self._check_unique(created)
            self._documents[created["_id"]] = created
            return copy.deepcopy(created)
        finally:
            self._lock.release()

    def find_near(
        self,
        field: str,
        point: GeoPoint,
        max_distance_meters: float,
        *,
        query: Optional[Query] = None,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        box = bounding_box(point, max_distance_meters)
        in_range: List[Tuple[float, Document]] = []

        self._acquire("find_near")
        try:
            for document in self._documents.values():
                location = get_path(document, field)
                if location is _MISSING or location is None:
                    continue
                candidate = GeoPoint.from_geojson(location, field=field)
                if not box.contains(candidate):
                    continue
                distance = haversine_meters(point, candidate)
                if distance > max_distance_meters:
                    continue
                if not matches(document, query):
                    continue
                in_range.append((distance, copy.deepcopy(document)))
        finally:
            self._lock.release()

        in_range.sort(key=lambda pair: pair[0])
        found = [document for _, document in in_range]
        if sort:
            found = _sort_documents(found, sort)
        if limit:
            found = found[:limit]
        return found

    def create_index(self, keys: SortSpec, *, unique: bool = False, sparse: bool = False) -> None:
        index_keys = tuple(keys)
        self._acquire("create_index")
        try:
            if index_keys in self._indexes:
                return
            self._indexes.append(index_keys)
            if unique:
                self._unique_indexes.append((tuple(path for path, _ in index_keys), sparse))
        finally:
            self._lock.release()

    def create_geo_index(self, field: str) -> None:
        if field not in self._geo_fields:
            self._geo_fields.append(field)

    # --- internal ---

    def _check_unique(self, candidate: Document) -> None:
        """Raise ValidationError if candidate would duplicate another document on a unique index."""
        for paths, sparse in self._unique_indexes:
            values = tuple(get_path(candidate, path) for path in paths)
            if sparse and all(value is _MISSING for value in values):
                continue
            for document in self._documents.values():
                if document["_id"] == candidate["_id"]:
                    continue
                if tuple(get_path(document, path) for path in paths) == values:
                    shown = [None if value is _MISSING else value for value in values]
                    raise ValidationError(f"{self.name}: {shown} is already taken", field=", ".join(paths))

    def _first_match(self, query: Query) -> Optional[Document]:
        document_id = query.get("_id")
        if document_id is not None and not isinstance(document_id, dict):
            # fast path for the common (_id, status) CAS shape
            document = self._documents.get(document_id)
            return document if document is not None and matches(document, query) else None

        for document in self._documents.values():
            if matches(document, query):
                return document
        return None


class InMemoryDocumentStore(DocumentStore):
    """
    A set of InMemoryCollection objects, created on first use.
    Share one instance between every service object that should see the same data.
    """

    def __init__(self, lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self.lock_timeout = lock_timeout
        self._collections: Dict[str, InMemoryCollection] = {}
        self._registry_lock = threading.Lock()

    def collection(self, name: str) -> InMemoryCollection:
        with self._registry_lock:
            if name not in self._collections:
                self._collections[name] = InMemoryCollection(name, lock_timeout=self.lock_timeout)
            return self._collections[name]

    def ping(self) -> None:
        return None
