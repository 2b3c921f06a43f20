"""Global test fixtures and configuration."""

import json
import os
import sys
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

# Make sure the package root is in the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from llu_sync.auth.client import LibreLinkUpClient
from llu_sync.models.tokens import AuthTicket, Credentials, SessionState
from llu_sync.utils.config import Settings

ACTIVATION_EPOCH = 1700000000
ACTIVATION_TIME = datetime.fromtimestamp(ACTIVATION_EPOCH, tz=timezone.utc)
PATIENT_ID = "patient-123"
SESSION_TOKEN = "session-token"
ROTATED_TOKEN = "rotated-token"
CLOUD_SERIAL = "0M0008ABCD"
LOCAL_SERIAL = "30M0008ABCD"

LOGIN_URL = "https://api.libreview.io/llu/auth/login"
GRAPH_URL = f"https://api-eu.libreview.io/llu/connections/{PATIENT_ID}/graph"
LOGBOOK_URL = f"https://api-eu.libreview.io/llu/connections/{PATIENT_ID}/logbook"


def llu_timestamp(dt: datetime) -> str:
    """Format a datetime the way the service does: M/d/yyyy h:mm:ss a."""
    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{dt.month}/{dt.day}/{dt.year} {hour}:{dt.minute:02d}:{dt.second:02d} {meridiem}"


def make_measurement(
    seconds_after_activation: int,
    value: int = 120,
    type: int = 0,
    color: int = 1,
    trend_arrow: Optional[int] = None,
    alarm_type: Optional[int] = None,
) -> Dict[str, Any]:
    """A wire measurement record timestamped relative to ACTIVATION_TIME."""
    dt = ACTIVATION_TIME + timedelta(seconds=seconds_after_activation)
    record = {
        "FactoryTimestamp": llu_timestamp(dt),
        "Timestamp": llu_timestamp(dt),
        "type": type,
        "ValueInMgPerDl": value,
        "MeasurementColor": color,
        "GlucoseUnits": 1,
        "Value": value,
        "isHigh": False,
        "isLow": False,
    }
    if trend_arrow is not None:
        record["TrendArrow"] = trend_arrow
    if alarm_type is not None:
        record["alarmType"] = alarm_type
    return record


def make_alarm(seconds_after_activation: int, alarm_type: int) -> Dict[str, Any]:
    dt = ACTIVATION_TIME + timedelta(seconds=seconds_after_activation)
    return {
        "FactoryTimestamp": llu_timestamp(dt),
        "Timestamp": llu_timestamp(dt),
        "type": 2,
        "alarmType": alarm_type,
    }


def make_active_sensor(sn: str = CLOUD_SERIAL, a: int = ACTIVATION_EPOCH, pt: int = 4) -> Dict[str, Any]:
    return {
        "device": {"did": "device-1", "v": "3.5.0"},
        "sensor": {"deviceId": "device-1", "sn": sn, "a": a, "w": 60, "pt": pt, "s": False, "lj": False},
    }


def make_graph_body(
    graph_data: List[Any],
    current: Optional[Dict[str, Any]] = None,
    active_sensors: Optional[List[Any]] = None,
    ticket_token: Optional[str] = ROTATED_TOKEN,
) -> Dict[str, Any]:
    connection = {
        "id": PATIENT_ID,
        "patientId": PATIENT_ID,
        "sensor": {"deviceId": "device-1", "sn": CLOUD_SERIAL, "a": ACTIVATION_EPOCH, "pt": 4},
    }
    if current is not None:
        connection["glucoseMeasurement"] = current
    body = {
        "status": 0,
        "data": {
            "connection": connection,
            "activeSensors": active_sensors if active_sensors is not None else [make_active_sensor()],
            "graphData": graph_data,
        },
    }
    if ticket_token is not None:
        body["ticket"] = {"token": ticket_token, "expires": ACTIVATION_EPOCH + 86400, "duration": 15552000000}
    return body


def make_login_body(
    user_id: str = PATIENT_ID, token: str = SESSION_TOKEN, expires: Optional[int] = None, duration: int = 15552000000
) -> Dict[str, Any]:
    return {
        "status": 0,
        "data": {
            "user": {"id": user_id, "firstName": "Test", "lastName": "Follower", "country": "DE"},
            "authTicket": {"token": token, "expires": expires or int(time.time()) + 3600, "duration": duration},
        },
    }


Handler = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeLibreView:
    """Routes requests by method and URL to canned responses."""

    def __init__(self):
        self.routes: Dict[tuple, List[Handler]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, *responses: Handler) -> "FakeLibreView":
        self.routes.setdefault((method, url), []).extend(responses)
        return self

    def add_json(self, method: str, url: str, body: Any, status_code: int = 200) -> "FakeLibreView":
        return self.add(method, url, httpx.Response(status_code, content=json.dumps(body).encode()))

    def requests_to(self, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, str(request.url)))
        if not queue:
            return httpx.Response(404, content=b"not found")
        handler = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(handler, httpx.Response):
            # A fresh copy so the last response can be served repeatedly.
            return httpx.Response(handler.status_code, headers=handler.headers, content=handler.content)
        return handler(request)


@pytest.fixture
def settings():
    """Settings independent of the process environment."""
    return Settings(
        service_env="test",
        llu_email="follower@example.com",
        llu_password="secret-password",
        llu_region="eu",
        timezone="UTC",
        scrape_logbook=True,
    )


@pytest.fixture
def credentials():
    return Credentials(email="follower@example.com", password="secret-password")


@pytest.fixture
def session():
    """An authenticated session valid for the next hour."""
    return SessionState(
        patient_id=PATIENT_ID,
        ticket=AuthTicket(token=SESSION_TOKEN, expires=int(time.time()) + 3600, duration=3600),
        region="eu",
    )


@pytest.fixture
def libreview():
    return FakeLibreView()


@pytest.fixture
async def client(settings, libreview):
    """A LibreLinkUpClient wired to the fake service."""
    async with LibreLinkUpClient(settings, transport=httpx.MockTransport(libreview)) as client:
        yield client


@pytest.fixture
def berlin_local_time(monkeypatch):
    """Run the test with the process's local time zone set to Europe/Berlin."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    # POSIX rule for Central European Time, usable without a tz database
    monkeypatch.setenv("TZ", "CET-1CEST,M3.5.0,M10.5.0/3")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
