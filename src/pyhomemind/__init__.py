"""pyhomemind - Async Python client for the MyHome Mind home inventory."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyhomemind")
except PackageNotFoundError:
    __version__ = "0+local"
from pyhomemind.auth import FirebaseIdentityProvider, IdentityProvider
from pyhomemind.client import HomeMindClient
from pyhomemind.config import HomeMindConfig
from pyhomemind.exceptions import (
    HomeMindAuthenticationError,
    HomeMindConfigError,
    HomeMindEntityNotFoundError,
    HomeMindError,
    HomeMindImageTooLargeError,
    HomeMindPermissionDeniedError,
    HomeMindReadError,
    HomeMindReadOnlyError,
    HomeMindSessionStateError,
    HomeMindTransportError,
)
from pyhomemind.models import ChecklistEntry, HomeDocument, Identity, Item, Option, Space
from pyhomemind.search import MatchField, MatchReason, SearchResults, search
from pyhomemind.share import build_share_url, share_token_from_url
from pyhomemind.state.events import CollectionKey, DocumentSnapshot, SessionPhase
from pyhomemind.state.store import LocalStateCache
from pyhomemind.stores import DocumentPath, DocumentStore, FirestoreDocumentStore, InMemoryDocumentStore
from pyhomemind.sync import SyncEngine, resolve_document_path

__all__ = [
    "__version__",
    "ChecklistEntry",
    "CollectionKey",
    "DocumentPath",
    "DocumentSnapshot",
    "DocumentStore",
    "FirebaseIdentityProvider",
    "FirestoreDocumentStore",
    "HomeDocument",
    "HomeMindAuthenticationError",
    "HomeMindClient",
    "HomeMindConfig",
    "HomeMindConfigError",
    "HomeMindEntityNotFoundError",
    "HomeMindError",
    "HomeMindImageTooLargeError",
    "HomeMindPermissionDeniedError",
    "HomeMindReadError",
    "HomeMindReadOnlyError",
    "HomeMindSessionStateError",
    "HomeMindTransportError",
    "Identity",
    "IdentityProvider",
    "InMemoryDocumentStore",
    "Item",
    "LocalStateCache",
    "MatchField",
    "MatchReason",
    "Option",
    "SearchResults",
    "SessionPhase",
    "Space",
    "SyncEngine",
    "build_share_url",
    "resolve_document_path",
    "search",
    "share_token_from_url",
]
