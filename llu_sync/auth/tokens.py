"""
Session token management.

This module loads the LibreLinkUp session from the host's session store,
persists a new one after login, and logs in again when the stored token is
missing or expired.
"""
import logging
from datetime import datetime
from typing import Optional

from llu_sync.auth.client import LibreLinkUpClient
from llu_sync.data.session_store import (
    PATIENT_ID_KEY,
    REGION_KEY,
    TOKEN_EXPIRATION_DATE_KEY,
    TOKEN_KEY,
    SessionStore,
)
from llu_sync.models.tokens import AuthTicket, Credentials, SessionState
from llu_sync.utils.error_handling import NotAuthenticatedError

logger = logging.getLogger(__name__)


def _parse_epoch(value: Optional[str]) -> int:
    if not value:
        return 0
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        logger.warning(f"Ignoring malformed {TOKEN_EXPIRATION_DATE_KEY} in session store")
        return 0


def load_session(store: SessionStore, default_region: str = "eu") -> SessionState:
    """
    Build a SessionState from the store.

    Args:
        store: The host's session store
        default_region: Region used when the store has none

    Returns:
        SessionState: The stored session, possibly empty
    """
    ticket = AuthTicket(
        token=store.get(TOKEN_KEY) or "",
        expires=_parse_epoch(store.get(TOKEN_EXPIRATION_DATE_KEY)),
    )
    return SessionState(
        patient_id=store.get(PATIENT_ID_KEY) or "",
        ticket=ticket,
        region=store.get(REGION_KEY) or default_region,
    )


def save_session(store: SessionStore, session: SessionState) -> None:
    """
    Persist a session to the store.

    Stores that offer `update` get all keys in one call.
    """
    values = {
        PATIENT_ID_KEY: session.patient_id,
        TOKEN_KEY: session.token,
        TOKEN_EXPIRATION_DATE_KEY: str(session.ticket.expires),
        REGION_KEY: session.region,
    }
    update = getattr(store, "update", None)
    if callable(update):
        update(values)
    else:
        for key, value in values.items():
            store.set(key, value)


async def get_session(
    client: LibreLinkUpClient,
    store: SessionStore,
    credentials: Credentials,
    auto_login: bool = True,
    now: Optional[datetime] = None,
) -> SessionState:
    """
    Return a usable session, logging in if the stored one is unusable.

    Args:
        client: LibreLinkUp API client
        store: The host's session store
        credentials: Follower account credentials
        auto_login: Whether to log in when the stored token is empty or expired
        now: Reference time for the expiry check

    Returns:
        SessionState: An authenticated session

    Raises:
        NotAuthenticatedError: If no usable session can be obtained
    """
    session = load_session(store, client.settings.llu_region)
    if session.is_authenticated(now):
        return session

    if not auto_login:
        raise NotAuthenticatedError("stored session token is empty or expired")

    logger.info("Stored LibreLinkUp session unusable, logging in", extra={"log_type": "login"})
    new_session, _ = await client.authenticate(credentials, session)
    if not new_session.is_authenticated(now):
        raise NotAuthenticatedError("login returned no usable auth ticket")

    save_session(store, new_session)
    return new_session
