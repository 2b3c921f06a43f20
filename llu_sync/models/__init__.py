"""Pydantic models and schemas."""

from llu_sync.models.alarms import (
    AlarmEvent,
    AlarmKind,
    LogbookAlarm
)
from llu_sync.models.glucose import (
    GlucoseMeasurement,
    MeasurementColor,
    MeasurementType,
    NormalizedReading,
    TrendArrow,
    READING_SOURCE
)
from llu_sync.models.sensors import (
    ActiveSensor,
    ProductType,
    SensorIdentity
)
from llu_sync.models.sync import (
    FetchResult,
    SyncPhase
)
from llu_sync.models.tokens import (
    AuthTicket,
    Credentials,
    SessionState
)

__all__ = [
    # Alarm models
    "AlarmEvent",
    "AlarmKind",
    "LogbookAlarm",

    # Glucose models
    "GlucoseMeasurement",
    "MeasurementColor",
    "MeasurementType",
    "NormalizedReading",
    "TrendArrow",
    "READING_SOURCE",

    # Sensor models
    "ActiveSensor",
    "ProductType",
    "SensorIdentity",

    # Sync models
    "FetchResult",
    "SyncPhase",

    # Session models
    "AuthTicket",
    "Credentials",
    "SessionState"
]
