"""Internal constants shared across the library."""

from __future__ import annotations

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"
FIRESTORE_URL = "https://firestore.googleapis.com/v1"
USER_AGENT = "pyhomemind"

DEFAULT_APP_ID = "myhome-mind-v1"
DEFAULT_DATABASE = "(default)"

#: Query parameter carrying the share token on the application URL.
SHARE_QUERY_PARAM = "share"

#: Current document schema version written by this library.
SCHEMA_VERSION = 1

DEFAULT_ITEM_NAME = "New Item"

# ------------------------------------------------------------------
# Document collections (wire names)
# ------------------------------------------------------------------

SPACES_KEY = "spaces"
ITEMS_KEY = "items"
GROCERIES_KEY = "groceries"
REPAIRS_KEY = "repairs"
LAST_UPDATED_KEY = "lastUpdated"
SCHEMA_VERSION_KEY = "schemaVersion"

#: Spaces every new session starts with, before the first snapshot arrives.
DEFAULT_SPACES: tuple[tuple[str, str], ...] = (
    ("1", "Living Room"),
    ("2", "Kitchen"),
    ("3", "Bathroom"),
    ("4", "Master Bedroom"),
    ("5", "Wardrobe"),
    ("6", "Kids' Room"),
    ("7", "Garden"),
)

PERMISSION_DENIED_MESSAGE = "Database permission denied. Check the security rules for this path."
