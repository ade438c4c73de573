"""Remote document store implementations."""

from pyhomemind.stores.base import DocumentPath, DocumentStore, Subscription
from pyhomemind.stores.firestore import FirestoreDocumentStore
from pyhomemind.stores.memory import InMemoryDocumentStore

__all__ = [
    "DocumentPath",
    "DocumentStore",
    "FirestoreDocumentStore",
    "InMemoryDocumentStore",
    "Subscription",
]
