"""Session store used to persist the LibreLinkUp session between runs.

The real store belongs to the host application (a settings file, a key-value
database, ...). The client only needs string-keyed get/set, described by the
`SessionStore` protocol; `InMemorySessionStore` serves tests and simple hosts.
"""
import threading
from typing import Dict, Optional, Protocol, runtime_checkable

PATIENT_ID_KEY = "patientId"
TOKEN_KEY = "token"
TOKEN_EXPIRATION_DATE_KEY = "tokenExpirationDate"
REGION_KEY = "region"


@runtime_checkable
class SessionStore(Protocol):
    """String-keyed store owned by the host application."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemorySessionStore:
    """Thread-safe dict-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def update(self, values: Dict[str, str]) -> None:
        """Write several keys so readers never see a partial session."""
        with self._lock:
            self._data.update(values)

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._data)
