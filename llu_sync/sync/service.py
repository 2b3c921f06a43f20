"""High-level synchronization run: session, graph and logbook in sequence."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from llu_sync.auth.client import LibreLinkUpClient
from llu_sync.auth.tokens import get_session, save_session
from llu_sync.data.session_store import SessionStore
from llu_sync.models.sensors import SensorIdentity
from llu_sync.models.sync import FetchResult, SyncPhase
from llu_sync.models.tokens import Credentials
from llu_sync.sync.graph import GraphFetcher
from llu_sync.sync.logbook import LogbookFetcher
from llu_sync.sync.sensors import SensorAdoptionPolicy, SensorReconciler, adopt_newer_family, never_adopt
from llu_sync.utils.config import Settings, get_settings, setup_logging
from llu_sync.utils.error_handling import NotAuthenticatedError
from llu_sync.utils.pipeline import AlarmDecoder, MeasurementNormalizer

logger = logging.getLogger(__name__)


class LibreLinkUpSync:
    """
    One-shot synchronization against LibreLinkUp.

    Each `run` moves through UNAUTHENTICATED -> AUTHENTICATED ->
    GRAPH_FETCHED and, when the graph rotates the token and logbook
    scraping is on, LOGBOOK_FETCHED. Errors propagate; nothing is retried.
    """

    def __init__(
        self,
        client: LibreLinkUpClient,
        store: SessionStore,
        credentials: Credentials,
        settings: Optional[Settings] = None,
        adoption_policy: Optional[SensorAdoptionPolicy] = None,
    ):
        self.client = client
        self.store = store
        self.credentials = credentials
        self.settings = settings or client.settings
        self.phase = SyncPhase.UNAUTHENTICATED

        if adoption_policy is None:
            adoption_policy = adopt_newer_family if self.settings.adopt_newer_family_sensors else never_adopt
        tz = self.settings.get_timezone()
        normalizer = MeasurementNormalizer(tz)
        self.graph_fetcher = GraphFetcher(
            client,
            normalizer,
            SensorReconciler(adoption_policy),
            LogbookFetcher(client, normalizer, AlarmDecoder(tz)),
            scrape_logbook=self.settings.scrape_logbook,
        )

    @classmethod
    def from_settings(
        cls,
        store: SessionStore,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        configure_logging: bool = True,
    ) -> "LibreLinkUpSync":
        """
        Build a sync run whose credentials come from settings.

        Unless `configure_logging` is false, the root logger is set up from
        `log_level` and `log_format`; hosts with their own logging pass False.
        """
        settings = settings or get_settings()
        if configure_logging:
            setup_logging(settings.log_level, settings.log_format)
        credentials = Credentials(email=settings.llu_email, password=settings.llu_password)
        return cls(LibreLinkUpClient(settings, transport=transport), store, credentials, settings)

    async def __aenter__(self) -> "LibreLinkUpSync":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.client.close()

    async def run(self, sensor: Optional[SensorIdentity] = None) -> FetchResult:
        """
        Authenticate if needed, then fetch graph and (optionally) logbook.

        Args:
            sensor: The locally tracked sensor, if any

        Returns:
            FetchResult: aggregated readings and alarms; `result.sensor` is
            the reconciled sensor the caller should store
        """
        self.phase = SyncPhase.UNAUTHENTICATED
        session = await get_session(self.client, self.store, self.credentials)
        self.phase = SyncPhase.AUTHENTICATED

        try:
            result = await self.graph_fetcher.fetch_graph(session, sensor)
        except NotAuthenticatedError:
            # The token was revoked before its expiry; force a login next run.
            save_session(self.store, session.cleared())
            raise
        self.phase = result.phase
        logger.info(
            "LibreLinkUp sync finished",
            extra={
                "log_type": "sync",
                "phase": self.phase.value,
                "readings": len(result.history),
                "logbook_readings": len(result.logbook_history),
                "alarms": len(result.alarms),
                "skipped": len(result.skipped),
            },
        )
        return result
