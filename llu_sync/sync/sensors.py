"""Reconciliation of cloud-reported sensors with the locally tracked one."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional

from pydantic import ValidationError

from llu_sync.models.sensors import ActiveSensor, ProductType, SensorIdentity
from llu_sync.utils.batch_processing import BatchProcessor
from llu_sync.utils.error_handling import ErrorCollector, RecordDecodeError
from llu_sync.utils.normalization import DISTANT_PAST, serial_matches

logger = logging.getLogger(__name__)

# Decides whether an unknown cloud sensor becomes the tracked local sensor.
SensorAdoptionPolicy = Callable[[ActiveSensor, Optional[SensorIdentity]], Optional[SensorIdentity]]


def never_adopt(active: ActiveSensor, local: Optional[SensorIdentity]) -> Optional[SensorIdentity]:
    return None


def adopt_newer_family(active: ActiveSensor, local: Optional[SensorIdentity]) -> Optional[SensorIdentity]:
    """Track a Libre 3 family sensor when nothing is tracked locally yet."""
    if local is None and active.pt == ProductType.LIBRE_3:
        return SensorIdentity(
            serial=active.sn,
            product_type=ProductType.LIBRE_3,
            last_reading_date=datetime.now(timezone.utc),
        )
    return None


def decode_active_sensor(entry: Any) -> ActiveSensor:
    if not isinstance(entry, dict) or not isinstance(entry.get("sensor"), dict):
        raise RecordDecodeError("active sensor entry has no sensor object", field="sensor")
    try:
        return ActiveSensor.model_validate(entry["sensor"])
    except ValidationError as e:
        raise RecordDecodeError(f"invalid active sensor ({e.error_count()} errors)", field="sensor") from e


@dataclass
class Reconciliation:
    activation_reference: datetime = DISTANT_PAST
    sensor: Optional[SensorIdentity] = None
    active_sensors: List[ActiveSensor] = field(default_factory=list)
    adopted: bool = False
    errors: ErrorCollector = field(default_factory=ErrorCollector)

    @property
    def matched(self) -> bool:
        return self.activation_reference != DISTANT_PAST


class SensorReconciler:
    """
    Matches the service's active-sensor list against the tracked sensor.

    The local sensor is never modified; an updated copy is returned in the
    Reconciliation together with the activation reference.
    """
    def __init__(self, adoption_policy: SensorAdoptionPolicy = never_adopt, clock: Callable[[], datetime] = None):
        self.adoption_policy = adoption_policy
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def reconcile(self, active_sensors: Iterable[Any], local_sensor: Optional[SensorIdentity]) -> Reconciliation:
        batch = BatchProcessor(decode_active_sensor, kind='active_sensor')
        decoded, errors = batch.process_batch(list(active_sensors or []))
        result = Reconciliation(sensor=local_sensor, active_sensors=decoded, errors=errors)

        for i, active in enumerate(decoded):
            logger.info(
                f"LibreLinkUp: active sensor #{i + 1} of {len(decoded)}: product type {active.pt}, "
                f"activation date {active.activation_time.isoformat()}",
                extra={"log_type": "active_sensor", "product_type": active.pt},
            )
            if result.sensor is None:
                adopted = self.adoption_policy(active, None)
                if adopted is not None:
                    logger.info("Adopting cloud sensor as the tracked sensor", extra={"log_type": "sensor_adopted"})
                    result.sensor = adopted
                    result.adopted = True
            if result.sensor is not None and serial_matches(result.sensor.serial, active.sn):
                result.activation_reference = active.activation_time
                result.sensor = result.sensor.with_activation(active.activation_time, self.clock())
                break

        if not result.matched:
            logger.info("No active sensor matches the tracked sensor; sensor age unknown",
                        extra={"log_type": "sensor_unmatched"})
        return result
