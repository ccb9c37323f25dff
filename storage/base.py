"""
Purpose: The document store contract the couriers and orders packages are written against.
What it does:
Defines the handful of primitives the dispatch core needs from a storage engine:

- insert / find / find_one
- find_one_and_update: ONE atomic conditional update (the CAS used for claiming)
- find_near: "everything within R meters of a point" over a GeoJSON Point field

Queries and updates use the MongoDB dialect, restricted to the subset below so the
in-memory engine can honour exactly the same semantics:

    query:  {"field": value}            equality (array fields: contains value)
            {"a.b": value}              dotted paths into sub-documents
            {"field": {"$ne": value}}   not equal (array fields: does not contain)
            {"field": {"$in": [...]}}   membership
    update: {"$set": {...}, "$setOnInsert": {...}, "$addToSet": {"field": value}}

Rule: No business rules here. Engines live in storage/memory.py and storage/mongo.py.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from geo.point import GeoPoint

Document = Dict[str, Any]
Query = Dict[str, Any]
Update = Dict[str, Dict[str, Any]]
SortSpec = Sequence[Tuple[str, int]]

ASCENDING = 1
DESCENDING = -1

SUPPORTED_QUERY_OPERATORS = frozenset({"$ne", "$in"})
SUPPORTED_UPDATE_OPERATORS = frozenset({"$set", "$setOnInsert", "$addToSet"})


def new_id() -> str:
    """Opaque document id. Both engines use string ids so they stay interchangeable."""
    return uuid.uuid4().hex


class DocumentCollection(ABC):
    """
    A named set of documents keyed by "_id".
    Every method either completes promptly or raises TransientStoreError.
    """

    name: str

    @abstractmethod
    def insert_one(self, document: Document) -> Document:
        """Store a new document, assigning "_id" if missing. Returns what was stored."""

    @abstractmethod
    def find_one(self, query: Query) -> Optional[Document]:
        ...

    @abstractmethod
    def find(self, query: Query, *, sort: Optional[SortSpec] = None, limit: Optional[int] = None) -> List[Document]:
        ...

    @abstractmethod
    def find_one_and_update(self, query: Query, update: Update, *, upsert: bool = False) -> Optional[Document]:
        """
        Atomically: find the first document matching query and apply update.
        Returns the document AFTER the update, or None when nothing matched
        (and upsert is False). Matching and writing are one indivisible step,
        so two callers racing on the same precondition can never both win.
        """

    @abstractmethod
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
        """
        Documents whose GeoJSON Point at `field` lies within max_distance_meters
        (great-circle) of point and that match query.
        Ordered by ascending distance unless sort is given.
        """

    @abstractmethod
    def create_index(self, keys: SortSpec, *, unique: bool = False, sparse: bool = False) -> None:
        """
        unique: a second document with the same key values raises ValidationError.
        sparse: documents missing every key field are left out of the index.
        """

    @abstractmethod
    def create_geo_index(self, field: str) -> None:
        ...


class DocumentStore(ABC):
    """A database: hands out collections by name."""

    @abstractmethod
    def collection(self, name: str) -> DocumentCollection:
        ...

    @abstractmethod
    def ping(self) -> None:
        """Raise TransientStoreError if the engine is unreachable."""
