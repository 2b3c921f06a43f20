"""Graph fetch: current and recent readings plus sensor reconciliation."""

import logging
from typing import Any, Optional

from llu_sync.auth.client import LibreLinkUpClient
from llu_sync.metrics import readings_ingested_total
from llu_sync.models.sensors import SensorIdentity
from llu_sync.models.sync import FetchResult, SyncPhase
from llu_sync.models.tokens import SessionState
from llu_sync.sync.logbook import LogbookFetcher
from llu_sync.sync.sensors import SensorReconciler
from llu_sync.utils.batch_processing import BatchProcessor
from llu_sync.utils.error_handling import JSONDecodingError, LibreLinkUpError
from llu_sync.utils.pipeline import MeasurementNormalizer

logger = logging.getLogger(__name__)


def rotated_token(body: Any) -> Optional[str]:
    """The `ticket.token` a graph response hands out for the logbook."""
    ticket = body.get("ticket") if isinstance(body, dict) else None
    token = ticket.get("token") if isinstance(ticket, dict) else None
    return token if isinstance(token, str) and token else None


class GraphFetcher:
    """
    Runs the primary data pull for one session.

    Readings from `graphData` are kept in service order and the connection's
    current measurement is appended last. When logbook scraping is enabled
    and the response rotates the token, the logbook is fetched afterwards;
    its failure never discards the graph readings.
    """

    def __init__(
        self,
        client: LibreLinkUpClient,
        normalizer: MeasurementNormalizer,
        reconciler: SensorReconciler,
        logbook_fetcher: Optional[LogbookFetcher] = None,
        scrape_logbook: bool = False,
    ):
        self.client = client
        self.normalizer = normalizer
        self.reconciler = reconciler
        self.logbook_fetcher = logbook_fetcher
        self.scrape_logbook = scrape_logbook

    async def fetch_graph(self, session: SessionState, sensor: Optional[SensorIdentity] = None) -> FetchResult:
        """
        Fetch the graph for the session's patient.

        Args:
            session: An authenticated session
            sensor: The locally tracked sensor, if any

        Returns:
            FetchResult: readings, alarms, raw bodies and the reconciled sensor

        Raises:
            NotAuthenticatedError: unusable session or rejected token
            NoConnectionError: transport failure or non-JSON body
            JSONDecodingError: no `data.connection` in the response
        """
        body, raw = await self.client.get_graph(session)

        data = body.get("data") if isinstance(body, dict) else None
        connection = data.get("connection") if isinstance(data, dict) else None
        if not isinstance(connection, dict):
            raise JSONDecodingError("graph response has no data.connection", response_body=raw[:300].decode("utf-8", "replace"))

        active_sensors = data.get("activeSensors")
        reconciliation = self.reconciler.reconcile(active_sensors if isinstance(active_sensors, list) else [], sensor)
        activation = reconciliation.activation_reference

        graph_data = data.get("graphData")
        records = list(graph_data) if isinstance(graph_data, list) else []
        current = connection.get("glucoseMeasurement")
        if current is not None:
            records.append(current)

        batch = BatchProcessor(lambda record: self.normalizer.normalize(record, activation), kind='graph')
        history, errors = batch.process_batch(records)
        errors.extend(reconciliation.errors)
        readings_ingested_total.labels(kind='graph').inc(len(history))
        counts = batch.summary()
        logger.info(
            f"LibreLinkUp: graph values: {counts['processed']} of {counts['total']}",
            extra={"log_type": "graph", "skipped": counts['failed'], "sensor_matched": reconciliation.matched},
        )

        result = FetchResult(
            history=history,
            raw_graph=raw,
            sensor=reconciliation.sensor,
            activation_reference=activation,
            phase=SyncPhase.GRAPH_FETCHED,
        )

        token = rotated_token(body)
        if self.scrape_logbook and token and self.logbook_fetcher is not None:
            logger.info("LibreLinkUp: new token for logbook", extra={"log_type": "token_rotated"})
            try:
                logbook = await self.logbook_fetcher.fetch_logbook(
                    token, session, start_index=len(history), activation_reference=activation
                )
            except LibreLinkUpError as e:
                logger.warning(
                    "LibreLinkUp: logbook fetch failed, keeping graph results",
                    extra={"log_type": "logbook_error", "error": str(e)},
                )
                result.logbook_error = str(e)
            else:
                result.logbook_history = logbook.readings
                result.alarms = logbook.alarms
                result.raw_logbook = logbook.raw
                errors.extend(logbook.errors)
                result.phase = SyncPhase.LOGBOOK_FETCHED

        if errors.has_errors():
            logger.warning(f"LibreLinkUp: skipped records:\n{errors.to_human_readable()}")
        result.skipped = errors.get_errors()
        return result
