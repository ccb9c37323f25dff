#Marks storage as a package.
#Re-exports the store contract and both engines so callers can do:
#from storage import InMemoryDocumentStore, MongoDocumentStore
#No business logic.

from .base import ASCENDING, DESCENDING, DocumentCollection, DocumentStore
from .memory import InMemoryDocumentStore
from .mongo import MongoDocumentStore

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "DocumentCollection",
    "DocumentStore",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
]
