import logging
from datetime import datetime, tzinfo
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from llu_sync.models.alarms import AlarmEvent, AlarmKind, LogbookAlarm
from llu_sync.models.glucose import READING_SOURCE, GlucoseMeasurement, MeasurementType, NormalizedReading
from llu_sync.utils.error_handling import ErrorSeverity, RecordDecodeError
from llu_sync.utils.normalization import compute_life_count, is_distant_past, parse_llu_timestamp

logger = logging.getLogger(__name__)

ALARM_KINDS = {
    0: AlarmKind.LOW,
    1: AlarmKind.HIGH,
}


def _first_error_field(exc: ValidationError) -> Optional[str]:
    errors = exc.errors()
    if errors and errors[0].get("loc"):
        return str(errors[0]["loc"][0])
    return None


class MeasurementNormalizer:
    """
    Turns a wire measurement record into a NormalizedReading.

    Graph readings are keyed by their life count relative to the activation
    reference; logbook readings use the running index supplied by the caller.
    """
    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    def decode(self, raw: Union[Dict[str, Any], GlucoseMeasurement]) -> GlucoseMeasurement:
        if isinstance(raw, GlucoseMeasurement):
            return raw
        if not isinstance(raw, dict):
            raise RecordDecodeError(f"expected an object, got {type(raw).__name__}")
        try:
            return GlucoseMeasurement.model_validate(raw)
        except ValidationError as e:
            raise RecordDecodeError(
                f"invalid measurement ({e.error_count()} errors)", field=_first_error_field(e)
            ) from e

    def normalize(
        self,
        raw: Union[Dict[str, Any], GlucoseMeasurement],
        activation_reference: datetime,
        running_index: Optional[int] = None,
    ) -> NormalizedReading:
        measurement = self.decode(raw)
        try:
            date = parse_llu_timestamp(measurement.timestamp, self.tz)
        except ValueError as e:
            raise RecordDecodeError(str(e), field="Timestamp", severity=ErrorSeverity.MEDIUM) from e

        if running_index is not None:
            reading_id = running_index
        else:
            reading_id = compute_life_count(date, activation_reference)

        return NormalizedReading(
            id=reading_id,
            value=measurement.value_in_mg_per_dl,
            timestamp=date,
            source=READING_SOURCE,
            color=measurement.measurement_color,
            trend_arrow=measurement.trend_arrow,
            alarm_type=measurement.alarm_type if measurement.type == MeasurementType.HYBRID else None,
            sensor_age_known=not is_distant_past(activation_reference),
        )


class AlarmDecoder:
    """Turns a logbook alarm record into an AlarmEvent."""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz

    def decode(self, raw: Union[Dict[str, Any], LogbookAlarm]) -> AlarmEvent:
        if isinstance(raw, LogbookAlarm):
            alarm = raw
        elif isinstance(raw, dict):
            try:
                alarm = LogbookAlarm.model_validate(raw)
            except ValidationError as e:
                raise RecordDecodeError(
                    f"invalid alarm ({e.error_count()} errors)", field=_first_error_field(e)
                ) from e
        else:
            raise RecordDecodeError(f"expected an object, got {type(raw).__name__}")

        kind = ALARM_KINDS.get(alarm.alarm_type)
        if kind is None:
            raise RecordDecodeError(f"unknown alarm type {alarm.alarm_type}", field="alarmType")
        try:
            date = parse_llu_timestamp(alarm.timestamp, self.tz)
        except ValueError as e:
            raise RecordDecodeError(str(e), field="Timestamp", severity=ErrorSeverity.MEDIUM) from e
        return AlarmEvent(timestamp=date, kind=kind)
