"""Models for LibreLinkUp glucose measurements and normalized readings."""

from datetime import datetime
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

READING_SOURCE = "LibreLinkUp"


class MeasurementType(IntEnum):
    """Discriminator of a wire record."""

    GRAPH = 0
    LOGBOOK = 1
    ALARM = 2
    HYBRID = 3


class MeasurementColor(IntEnum):
    """Severity color the service assigns to each reading."""

    GREEN = 1
    YELLOW = 2
    ORANGE = 3
    RED = 4


class TrendArrow(IntEnum):
    """Direction indicator accompanying a reading."""

    UNKNOWN = -1
    NOT_DETERMINED = 0
    FALLING_QUICKLY = 1
    FALLING = 2
    STABLE = 3
    RISING = 4
    RISING_QUICKLY = 5


class GlucoseMeasurement(BaseModel):
    """A measurement record as sent by the service (graph, logbook or hybrid)."""

    model_config = ConfigDict(populate_by_name=True)

    factory_timestamp: str = Field(..., alias="FactoryTimestamp", description="UTC sensor timestamp")
    timestamp: str = Field(..., alias="Timestamp", description="Wall-clock timestamp, M/d/yyyy h:mm:ss a")
    type: MeasurementType = Field(..., description="0 graph, 1 logbook, 2 alarm, 3 hybrid")
    alarm_type: Optional[int] = Field(None, alias="alarmType", description="Hybrid records: 1 low, 2 high")
    value_in_mg_per_dl: int = Field(..., alias="ValueInMgPerDl", description="Glucose value in mg/dL")
    trend_arrow: Optional[TrendArrow] = Field(None, alias="TrendArrow", description="Present in logbook data")
    trend_message: Optional[str] = Field(None, alias="TrendMessage")
    measurement_color: MeasurementColor = Field(..., alias="MeasurementColor")
    glucose_units: int = Field(..., alias="GlucoseUnits", description="0 mmol/L, 1 mg/dL")
    value: float = Field(..., alias="Value", description="Value in the account's display unit")
    is_high: bool = Field(..., alias="isHigh")
    is_low: bool = Field(..., alias="isLow")

    @field_validator("trend_arrow", mode="before")
    @classmethod
    def coerce_trend_arrow(cls, value):
        """Unrecognized arrows map to UNKNOWN instead of rejecting the record."""
        if value is None:
            return None
        try:
            return TrendArrow(int(value))
        except (TypeError, ValueError):
            return TrendArrow.UNKNOWN


class NormalizedReading(BaseModel):
    """A point reading keyed by its sensor life count."""

    id: int = Field(..., description="Life count in minutes, or running index for logbook readings")
    value: int = Field(..., description="Glucose value in mg/dL")
    timestamp: datetime = Field(..., description="Absolute time of the reading")
    source: str = Field(READING_SOURCE, description="Integration that produced the reading")
    color: MeasurementColor = Field(..., description="Service color classification")
    trend_arrow: Optional[TrendArrow] = Field(None, description="Service trend arrow, passed through")
    alarm_type: Optional[int] = Field(None, description="Embedded alarm type of hybrid records")
    sensor_age_known: bool = Field(True, description="False when no activation reference was found")
