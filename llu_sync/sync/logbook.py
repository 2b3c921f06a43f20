"""Logbook fetch: extended history and alarm events."""

import logging
from datetime import datetime
from typing import Any, List, NamedTuple

from llu_sync.auth.client import LibreLinkUpClient
from llu_sync.metrics import readings_ingested_total
from llu_sync.models.alarms import AlarmEvent
from llu_sync.models.glucose import MeasurementType, NormalizedReading
from llu_sync.models.tokens import SessionState
from llu_sync.utils.batch_processing import BatchProcessor
from llu_sync.utils.error_handling import ErrorCollector, JSONDecodingError, RecordDecodeError
from llu_sync.utils.normalization import DISTANT_PAST
from llu_sync.utils.pipeline import AlarmDecoder, MeasurementNormalizer

logger = logging.getLogger(__name__)

MEASUREMENT_TYPES = {MeasurementType.LOGBOOK, MeasurementType.HYBRID}


class LogbookResult(NamedTuple):
    readings: List[NormalizedReading]
    alarms: List[AlarmEvent]
    raw: bytes
    errors: ErrorCollector


def entry_type(entry: Any) -> int:
    if not isinstance(entry, dict):
        raise RecordDecodeError(f"expected an object, got {type(entry).__name__}")
    value = entry.get("type")
    if isinstance(value, bool) or not isinstance(value, int):
        raise RecordDecodeError("missing or invalid record type", field="type")
    return value


class LogbookFetcher:
    """Fetches the logbook with the token rotated by the graph response."""

    def __init__(self, client: LibreLinkUpClient, normalizer: MeasurementNormalizer, alarm_decoder: AlarmDecoder):
        self.client = client
        self.normalizer = normalizer
        self.alarm_decoder = alarm_decoder

    async def fetch_logbook(
        self,
        rotated_token: str,
        session: SessionState,
        start_index: int = 0,
        activation_reference: datetime = DISTANT_PAST,
    ) -> LogbookResult:
        """
        Fetch and decode the logbook.

        Logbook timestamps are not aligned with the sensor activation, so
        measurements are numbered by a running index continuing from
        `start_index`. Alarms (`type == 2`) go through the alarm decoder.
        Records of any other type are ignored.

        Raises:
            NoConnectionError, NotAuthenticatedError: request failures
            JSONDecodingError: the body has no `data` list
        """
        body, raw = await self.client.get_logbook(rotated_token, session)
        entries = body.get("data") if isinstance(body, dict) else None
        if not isinstance(entries, list):
            raise JSONDecodingError("logbook response has no data list", response_body=raw[:300].decode("utf-8", "replace"))

        readings: List[NormalizedReading] = []
        alarms: List[AlarmEvent] = []
        index = start_index

        def decode_entry(entry: Any) -> None:
            nonlocal index
            kind = entry_type(entry)
            if kind in MEASUREMENT_TYPES:
                readings.append(self.normalizer.normalize(entry, activation_reference, running_index=index + 1))
                index += 1
            elif kind == MeasurementType.ALARM:
                alarms.append(self.alarm_decoder.decode(entry))
            else:
                logger.debug(f"Ignoring logbook record of type {kind}")

        batch = BatchProcessor(decode_entry, kind='logbook')
        _, errors = batch.process_batch(entries)

        readings_ingested_total.labels(kind='logbook').inc(len(readings))
        readings_ingested_total.labels(kind='alarm').inc(len(alarms))
        counts = batch.summary()
        logger.info(
            f"LibreLinkUp: logbook values: {len(readings)}, alarms: {', '.join(str(a) for a in alarms) or 'none'}",
            extra={"log_type": "logbook", "entries": counts['total'], "skipped": counts['failed']},
        )
        return LogbookResult(readings, alarms, raw, errors)
