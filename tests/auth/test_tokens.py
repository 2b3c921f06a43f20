"""Tests for session loading, persisting and login-on-demand."""
import time

import pytest

from llu_sync.auth.tokens import get_session, load_session, save_session
from llu_sync.data.session_store import InMemorySessionStore
from llu_sync.models.tokens import AuthTicket, SessionState
from llu_sync.utils.error_handling import NotAuthenticatedError

from conftest import LOGIN_URL, PATIENT_ID, SESSION_TOKEN, make_login_body


class KeyValueStore:
    """A store offering only get/set, like most host settings stores."""

    def __init__(self):
        self.data = {}
        self.writes = []

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.writes.append(key)
        self.data[key] = value


def test_load_session_from_empty_store():
    session = load_session(InMemorySessionStore(), default_region="us")

    assert session == SessionState(region="us")
    assert not session.is_authenticated()


def test_save_and_load_round_trip(session):
    store = InMemorySessionStore()

    save_session(store, session)
    loaded = load_session(store)

    assert store.snapshot()["patientId"] == PATIENT_ID
    assert store.snapshot()["tokenExpirationDate"] == str(session.ticket.expires)
    assert loaded.patient_id == session.patient_id
    assert loaded.token == session.token
    assert loaded.ticket.expires == session.ticket.expires
    assert loaded.is_authenticated()


def test_save_session_with_get_set_store(session):
    store = KeyValueStore()

    save_session(store, session)

    assert sorted(store.writes) == ["patientId", "region", "token", "tokenExpirationDate"]


def test_load_session_ignores_malformed_expiration():
    store = InMemorySessionStore({"patientId": PATIENT_ID, "token": "t", "tokenExpirationDate": "soon"})

    session = load_session(store)

    assert session.ticket.expires == 0
    assert not session.is_authenticated()


@pytest.mark.asyncio
async def test_get_session_reuses_valid_token(client, libreview, credentials, session):
    store = InMemorySessionStore()
    save_session(store, session)

    result = await get_session(client, store, credentials)

    assert result.token == session.token
    assert libreview.requests == []


@pytest.mark.asyncio
async def test_get_session_logs_in_when_expired(client, libreview, credentials):
    expired = SessionState(patient_id=PATIENT_ID, ticket=AuthTicket(token="old", expires=int(time.time()) - 10))
    store = InMemorySessionStore()
    save_session(store, expired)
    libreview.add_json("POST", LOGIN_URL, make_login_body())

    result = await get_session(client, store, credentials)

    assert result.token == SESSION_TOKEN
    assert store.get("token") == SESSION_TOKEN
    assert len(libreview.requests) == 1


@pytest.mark.asyncio
async def test_get_session_without_auto_login(client, credentials):
    with pytest.raises(NotAuthenticatedError):
        await get_session(client, InMemorySessionStore(), credentials, auto_login=False)


@pytest.mark.asyncio
async def test_get_session_rejected_login_leaves_store_untouched(client, libreview, credentials):
    store = InMemorySessionStore()
    libreview.add_json("POST", LOGIN_URL, {"status": 2, "error": {"message": "notAuthenticated"}})

    with pytest.raises(NotAuthenticatedError):
        await get_session(client, store, credentials)

    assert store.snapshot() == {}


@pytest.mark.asyncio
async def test_get_session_login_without_ticket_fails(client, libreview, credentials):
    store = InMemorySessionStore()
    libreview.add_json("POST", LOGIN_URL, {"status": 0, "data": {"user": {"id": PATIENT_ID}, "authTicket": {}}})

    with pytest.raises(NotAuthenticatedError, match="no usable auth ticket"):
        await get_session(client, store, credentials)

    assert store.snapshot() == {}


@pytest.mark.parametrize("stored", ["inf", "-inf", "1e400", "nan"])
def test_load_session_ignores_out_of_range_expiration(stored):
    store = InMemorySessionStore({"patientId": PATIENT_ID, "token": "t", "tokenExpirationDate": stored})

    session = load_session(store)

    assert session.ticket.expires == 0
    assert not session.is_authenticated()
