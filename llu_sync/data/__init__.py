"""Session persistence interfaces."""

from llu_sync.data.session_store import InMemorySessionStore, SessionStore

__all__ = ["InMemorySessionStore", "SessionStore"]
