"""
Purpose: MongoDB storage engine.
What it does:
Implements storage.base on top of pymongo, so several stateless dispatch processes
can share one database.

- find_one_and_update(..., return_document=AFTER) is the cross-process CAS.
- find_near uses $nearSphere on a 2dsphere index.
- Connection loss and server timeouts are translated into TransientStoreError.
- A unique-index violation (DuplicateKeyError) is translated into ValidationError
  naming the indexed field(s), the same as the in-memory engine.
- Any other OperationFailure means this package sent MongoDB a malformed command.
  That is a programming fault, not a request outcome, so it propagates unchanged
  instead of being dressed up as one of the core.errors kinds.

Configuration comes from the environment (or a .env file):
    MONGODB_URI=mongodb://127.0.0.1:27017
    MONGODB_DB=campus_dispatch
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import List, Optional

from dotenv import load_dotenv
from pymongo import GEOSPHERE, MongoClient, ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, ExecutionTimeout, WTimeoutError

from core.errors import TransientStoreError, ValidationError
from geo.point import GeoPoint

from .base import Document, DocumentCollection, DocumentStore, Query, SortSpec, Update, new_id

load_dotenv()
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://127.0.0.1:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "campus_dispatch")

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (ConnectionFailure, ExecutionTimeout, WTimeoutError)


@contextmanager
def translate_errors(operation: str):
    try:
        yield
    except DuplicateKeyError as exc:
        fields = ", ".join((exc.details or {}).get("keyPattern", {})) or None
        logger.warning(f"MongoDB {operation} hit a unique index: {exc}")
        raise ValidationError(f"{operation}: value is already taken", field=fields) from exc
    except TRANSIENT_ERRORS as exc:
        logger.error(f"MongoDB {operation} failed: {exc}")
        raise TransientStoreError(f"{operation} failed: {exc}") from exc


class MongoCollection(DocumentCollection):
    """Thin adapter from a pymongo Collection to storage.base."""

    def __init__(self, collection):
        self._collection = collection
        self.name = collection.name

    def insert_one(self, document: Document) -> Document:
        stored = dict(document)
        stored.setdefault("_id", new_id())
        with translate_errors(f"{self.name}.insert_one"):
            self._collection.insert_one(stored)
        return stored

    def find_one(self, query: Query) -> Optional[Document]:
        with translate_errors(f"{self.name}.find_one"):
            return self._collection.find_one(query)

    def find(self, query: Query, *, sort: Optional[SortSpec] = None, limit: Optional[int] = None) -> List[Document]:
        with translate_errors(f"{self.name}.find"):
            cursor = self._collection.find(query)
            if sort:
                cursor = cursor.sort(list(sort))
            if limit:
                cursor = cursor.limit(limit)
            return list(cursor)

    def find_one_and_update(self, query: Query, update: Update, *, upsert: bool = False) -> Optional[Document]:
        if upsert:
            # string ids on both engines; pymongo would otherwise mint an ObjectId
            update = dict(update)
            update["$setOnInsert"] = {"_id": new_id(), **update.get("$setOnInsert", {})}
            if "_id" in query:
                update["$setOnInsert"].pop("_id")

        with translate_errors(f"{self.name}.find_one_and_update"):
            return self._collection.find_one_and_update(
                query,
                update,
                upsert=upsert,
                return_document=ReturnDocument.AFTER,
            )

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
        near_query = dict(query or {})
        near_query[field] = {
            "$nearSphere": {
                "$geometry": point.to_geojson(),
                "$maxDistance": max_distance_meters,
            }
        }
        return self.find(near_query, sort=sort, limit=limit)

    def create_index(self, keys: SortSpec, *, unique: bool = False, sparse: bool = False) -> None:
        with translate_errors(f"{self.name}.create_index"):
            self._collection.create_index(list(keys), unique=unique, sparse=sparse)

    def create_geo_index(self, field: str) -> None:
        with translate_errors(f"{self.name}.create_geo_index"):
            self._collection.create_index([(field, GEOSPHERE)])


class MongoDocumentStore(DocumentStore):
    """
    One MongoDB database. Pass `client` to reuse (or mock) an existing MongoClient.
    """

    def __init__(
        self,
        uri: Optional[str] = None,
        database: Optional[str] = None,
        *,
        client=None,
        server_selection_timeout_ms: int = 10000,
    ):
        self._client = client or MongoClient(
            uri or MONGODB_URI,
            serverSelectionTimeoutMS=server_selection_timeout_ms,
            tz_aware=True,
        )
        self._database = self._client[database or MONGODB_DB]

    def collection(self, name: str) -> MongoCollection:
        return MongoCollection(self._database[name])

    def ping(self) -> None:
        with translate_errors("ping"):
            self._client.admin.command("ping")
