"""LibreLinkUp cloud glucose synchronization client."""

from llu_sync.auth.client import LibreLinkUpClient
from llu_sync.data.session_store import InMemorySessionStore, SessionStore
from llu_sync.models import (
    AlarmEvent,
    AlarmKind,
    Credentials,
    FetchResult,
    NormalizedReading,
    SensorIdentity,
    SessionState,
    SyncPhase,
)
from llu_sync.sync.service import LibreLinkUpSync
from llu_sync.utils.error_handling import (
    JSONDecodingError,
    LibreLinkUpError,
    NoConnectionError,
    NotAuthenticatedError,
)

__version__ = "0.1.0"

__all__ = [
    "AlarmEvent",
    "AlarmKind",
    "Credentials",
    "FetchResult",
    "InMemorySessionStore",
    "JSONDecodingError",
    "LibreLinkUpClient",
    "LibreLinkUpError",
    "LibreLinkUpSync",
    "NoConnectionError",
    "NormalizedReading",
    "NotAuthenticatedError",
    "SensorIdentity",
    "SessionState",
    "SessionStore",
    "SyncPhase",
]
