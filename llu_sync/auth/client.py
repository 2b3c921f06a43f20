"""Async API client for the LibreLinkUp follower service.

This client wraps the HTTPS requests to the login, graph and logbook
endpoints. It maps transport failures and service-level rejections onto the
client's error types and never retries; callers decide when to call again.
"""
from __future__ import annotations

import hashlib
import json
import logging
import math
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from llu_sync.metrics import llu_api_call_latency_seconds, llu_api_call_total
from llu_sync.models.tokens import AuthTicket, Credentials, SessionState
from llu_sync.utils.config import Settings, get_settings
from llu_sync.utils.error_handling import (
    JSONDecodingError,
    LibreLinkUpError,
    NoConnectionError,
    NotAuthenticatedError,
)
from llu_sync.utils.logging_utils import redact_sensitive_data

logger = logging.getLogger(__name__)

__all__ = [
    "LibreLinkUpClient",
    "LibreLinkUpError",
    "NoConnectionError",
    "NotAuthenticatedError",
    "JSONDecodingError",
    "LOGIN_ENDPOINT",
    "CONNECTIONS_ENDPOINT",
]

LOGIN_ENDPOINT = "llu/auth/login"
CONNECTIONS_ENDPOINT = "llu/connections"

# Service-level status code of a rejected login or token.
STATUS_NOT_AUTHENTICATED = 2


def account_id_for(patient_id: str) -> str:
    """Account-Id header value expected by current service versions."""
    return hashlib.sha256(patient_id.encode("utf-8")).hexdigest()


def _str_field(d: Dict[str, Any], key: str, default: str = "") -> str:
    value = d.get(key)
    return value if isinstance(value, str) else default


def _int_field(d: Dict[str, Any], key: str, default: int = 0) -> int:
    value = d.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(value)


class LibreLinkUpClient:
    """Low-level async client for LibreLinkUp endpoints."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.site_url = self.settings.llu_site_url.rstrip("/")
        self.http_client = httpx.AsyncClient(
            timeout=self.settings.request_timeout_seconds,
            transport=transport,
        )

    # ---------------------- async context manager helpers ------------------
    async def __aenter__(self) -> "LibreLinkUpClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.close()

    async def close(self) -> None:
        """Close underlying HTTPX client."""
        await self.http_client.aclose()

    # ---------------------- request building ------------------------------
    @property
    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.settings.llu_user_agent,
            "Content-Type": "application/json",
            "product": self.settings.llu_product,
            "version": self.settings.llu_version,
            "Accept-Encoding": "gzip, deflate, br",
            "Connection": "keep-alive",
            "Pragma": "no-cache",
            "Cache-Control": "no-cache",
        }

    def authenticated_headers(self, token: str, patient_id: str) -> Dict[str, str]:
        headers = self.headers
        headers["Authorization"] = f"Bearer {token}"
        headers["Account-Id"] = account_id_for(patient_id)
        return headers

    def regional_site(self, region: str) -> str:
        if not region:
            return self.site_url
        return self.settings.llu_regional_site_template.format(region=region.strip().lower()).rstrip("/")

    def connection_url(self, session: SessionState, resource: str) -> str:
        return f"{self.regional_site(session.region)}/{CONNECTIONS_ENDPOINT}/{session.patient_id}/{resource}"

    # ---------------------- HTTP helpers ----------------------------------
    async def _send(self, method: str, url: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        logger.debug(
            "LibreLinkUp API request",
            extra={
                "log_type": "request",
                "method": method,
                "url": url,
                "headers": redact_sensitive_data(kwargs.get("headers", {})),
            },
        )
        start = time.monotonic()
        status = "error"
        try:
            response = await self.http_client.request(method, url, **kwargs)
            status = "success" if response.is_success else "error"
        except httpx.RequestError as exc:
            logger.error(
                "LibreLinkUp server error",
                extra={"log_type": "transport_error", "method": method, "endpoint": endpoint, "error": str(exc)},
            )
            raise NoConnectionError(f"{method} {endpoint} failed: {exc}") from exc
        finally:
            llu_api_call_latency_seconds.labels(method=method, endpoint=endpoint).observe(time.monotonic() - start)
            llu_api_call_total.labels(method=method, endpoint=endpoint, status=status).inc()

        logger.debug(
            "LibreLinkUp API response",
            extra={
                "log_type": "response",
                "method": method,
                "endpoint": endpoint,
                "status_code": response.status_code,
            },
        )
        return response

    @staticmethod
    def _parse_json(response: httpx.Response, endpoint: str) -> Any:
        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.error(
                "LibreLinkUp response is not JSON",
                extra={"log_type": "decode_error", "endpoint": endpoint, "status_code": response.status_code},
            )
            raise NoConnectionError(
                f"{endpoint} response is not JSON",
                status_code=response.status_code,
                response_body=response.text[:300],
            ) from exc
        logger.debug(
            "LibreLinkUp response body",
            extra={"log_type": "response_body", "endpoint": endpoint, "body": redact_sensitive_data(body)},
        )
        return body

    def _checked_body(self, response: httpx.Response, endpoint: str) -> Any:
        """Parse an authenticated response, failing on a rejected token."""
        if response.status_code == 401:
            raise NotAuthenticatedError(
                f"{endpoint} not authorized", status_code=401, response_body=response.text[:300]
            )
        body = self._parse_json(response, endpoint)
        if isinstance(body, dict) and body.get("status") == STATUS_NOT_AUTHENTICATED:
            raise NotAuthenticatedError(
                f"{endpoint} rejected the session token", status_code=response.status_code
            )
        return body

    # ---------------------- login -----------------------------------------
    async def authenticate(
        self, credentials: Credentials, session: Optional[SessionState] = None
    ) -> Tuple[SessionState, bytes]:
        """
        Log in and return the updated session with the raw response body.

        The input session is never modified. A response without user or
        ticket returns it unchanged; missing ticket fields fall back to
        empty/zero values.

        Raises:
            NotAuthenticatedError: the service rejected the credentials
            NoConnectionError: transport failure or non-JSON body
        """
        if session is None:
            session = SessionState(region=self.settings.llu_region)
        login_url = f"{self.site_url}/{LOGIN_ENDPOINT}"

        for attempt in (1, 2):
            response = await self._send("POST", login_url, "login", headers=self.headers, json=credentials.to_login_body())
            if response.status_code == 401:
                logger.warning("LibreLinkUp: POST not authorized", extra={"log_type": "login", "status_code": 401})
            else:
                logger.info(
                    f"LibreLinkUp: POST {'success' if response.is_success else 'error'} (status: {response.status_code})",
                    extra={"log_type": "login", "status_code": response.status_code},
                )

            body = self._parse_json(response, "login")
            if not isinstance(body, dict):
                body = {}
            if body.get("status") == STATUS_NOT_AUTHENTICATED:
                error = body.get("error") if isinstance(body.get("error"), dict) else {}
                raise NotAuthenticatedError(
                    _str_field(error, "message", "notAuthenticated"), status_code=response.status_code
                )

            data = body.get("data") if isinstance(body.get("data"), dict) else {}

            if data.get("redirect") and _str_field(data, "region"):
                region = _str_field(data, "region").strip().lower()
                if attempt == 2:
                    raise NotAuthenticatedError(f"login redirected twice (region {region})")
                logger.info("LibreLinkUp: login redirected", extra={"log_type": "login_redirect", "region": region})
                session = session.with_region(region)
                login_url = f"{self.regional_site(region)}/{LOGIN_ENDPOINT}"
                continue

            user = data.get("user")
            ticket_dict = data.get("authTicket")
            if not isinstance(user, dict) or not isinstance(ticket_dict, dict) or not _str_field(user, "id"):
                logger.warning(
                    "LibreLinkUp: login response carries no user or auth ticket",
                    extra={"log_type": "login", "status": body.get("status")},
                )
                return session, response.content

            ticket = AuthTicket(
                token=_str_field(ticket_dict, "token"),
                expires=_int_field(ticket_dict, "expires"),
                duration=_int_field(ticket_dict, "duration"),
            )
            logger.info(
                f"LibreLinkUp: authenticated, token expires on {ticket.expires_at.isoformat()}",
                extra={"log_type": "login", "duration": ticket.duration},
            )
            return session.with_login(_str_field(user, "id"), ticket), response.content

        raise NotAuthenticatedError("login failed after redirect")  # pragma: no cover

    # ---------------------- data endpoints --------------------------------
    async def get_graph(self, session: SessionState) -> Tuple[Any, bytes]:
        """GET the graph payload for the session's patient."""
        if not session.is_authenticated():
            raise NotAuthenticatedError("no valid session token")
        response = await self._send(
            "GET",
            self.connection_url(session, "graph"),
            "graph",
            headers=self.authenticated_headers(session.token, session.patient_id),
        )
        return self._checked_body(response, "graph"), response.content

    async def get_logbook(self, rotated_token: str, session: SessionState) -> Tuple[Any, bytes]:
        """GET the logbook payload using the token rotated by the graph response."""
        if not rotated_token:
            raise NotAuthenticatedError("no rotated token for the logbook")
        response = await self._send(
            "GET",
            self.connection_url(session, "logbook"),
            "logbook",
            headers=self.authenticated_headers(rotated_token, session.patient_id),
        )
        return self._checked_body(response, "logbook"), response.content
