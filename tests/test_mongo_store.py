"""
MongoDB adapter tests against a mocked pymongo client; no server needed.
"""

from unittest.mock import MagicMock

import pytest
from pymongo import GEOSPHERE, ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure, ServerSelectionTimeoutError

from core.errors import TransientStoreError, ValidationError
from geo.point import GeoPoint
from storage.base import DESCENDING
from storage.mongo import MongoCollection, MongoDocumentStore


@pytest.fixture
def raw():
    collection = MagicMock()
    collection.name = "orders"
    return collection


@pytest.fixture
def collection(raw):
    return MongoCollection(raw)


def test_insert_assigns_string_id(collection, raw):
    stored = collection.insert_one({"status": "pending"})

    assert isinstance(stored["_id"], str)
    raw.insert_one.assert_called_once_with(stored)


def test_conditional_update_returns_document_after(collection, raw):
    raw.find_one_and_update.return_value = {"_id": "o1", "status": "accepted"}

    result = collection.find_one_and_update({"_id": "o1", "status": "pending"}, {"$set": {"status": "accepted"}})

    assert result["status"] == "accepted"
    raw.find_one_and_update.assert_called_once_with(
        {"_id": "o1", "status": "pending"},
        {"$set": {"status": "accepted"}},
        upsert=False,
        return_document=ReturnDocument.AFTER,
    )


def test_upsert_mints_string_id_on_insert(collection, raw):
    collection.find_one_and_update(
        {"contact": "+91-1"},
        {"$set": {"name": "Asha"}, "$setOnInsert": {"created_at": 1}},
        upsert=True,
    )

    _, update = raw.find_one_and_update.call_args.args
    assert isinstance(update["$setOnInsert"]["_id"], str)
    assert update["$setOnInsert"]["created_at"] == 1
    assert raw.find_one_and_update.call_args.kwargs["upsert"] is True


def test_upsert_by_id_keeps_the_callers_id(collection, raw):
    collection.find_one_and_update({"_id": "c1"}, {"$set": {"name": "Asha"}}, upsert=True)

    _, update = raw.find_one_and_update.call_args.args
    assert "_id" not in update["$setOnInsert"]


def test_find_near_builds_near_sphere_query(collection, raw):
    cursor = raw.find.return_value
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.__iter__.return_value = iter([{"_id": "o1"}])

    found = collection.find_near(
        "pickup.geo",
        GeoPoint(77.209, 28.6139),
        2000,
        query={"status": "pending"},
        sort=[("created_at", DESCENDING)],
        limit=30,
    )

    assert found == [{"_id": "o1"}]
    raw.find.assert_called_once_with({
        "status": "pending",
        "pickup.geo": {
            "$nearSphere": {
                "$geometry": {"type": "Point", "coordinates": [77.209, 28.6139]},
                "$maxDistance": 2000,
            }
        },
    })
    cursor.sort.assert_called_once_with([("created_at", DESCENDING)])
    cursor.limit.assert_called_once_with(30)


def test_geo_index_is_2dsphere(collection, raw):
    collection.create_geo_index("location")
    raw.create_index.assert_called_once_with([("location", GEOSPHERE)])


def test_unique_index_options_reach_the_server(collection, raw):
    collection.create_index([("contact", 1)], unique=True, sparse=True)
    raw.create_index.assert_called_once_with([("contact", 1)], unique=True, sparse=True)


def test_duplicate_key_is_a_validation_error_naming_the_field(collection, raw):
    raw.find_one_and_update.side_effect = DuplicateKeyError(
        "E11000 duplicate key error", code=11000, details={"keyPattern": {"contact": 1}}
    )

    with pytest.raises(ValidationError) as excinfo:
        collection.find_one_and_update({"_id": "c2"}, {"$set": {"contact": "+91-1"}}, upsert=True)
    assert excinfo.value.field == "contact"


def test_connection_loss_is_transient(collection, raw):
    raw.find_one.side_effect = ServerSelectionTimeoutError("no primary")

    with pytest.raises(TransientStoreError):
        collection.find_one({"_id": "o1"})


def test_malformed_command_is_a_programming_fault_not_a_request_error(collection, raw):
    # e.g. an operator the server does not know; a bug in this package, so no core.errors kind
    raw.find_one_and_update.side_effect = OperationFailure("unknown modifier: $frobnicate")

    with pytest.raises(OperationFailure):
        collection.find_one_and_update({"_id": "o1"}, {"$set": {"status": "accepted"}})


def test_store_ping_and_collections():
    client = MagicMock()
    store = MongoDocumentStore(database="campus_test", client=client)

    store.ping()
    client.admin.command.assert_called_once_with("ping")

    store.collection("couriers")
    client.__getitem__.assert_called_with("campus_test")

    client.admin.command.side_effect = ServerSelectionTimeoutError("down")
    with pytest.raises(TransientStoreError):
        store.ping()
