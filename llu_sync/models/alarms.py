"""Models for logbook alarm records and events."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AlarmKind(str, Enum):
    """Kind of a glucose alarm."""

    LOW = "low"
    HIGH = "high"


class LogbookAlarm(BaseModel):
    """An alarm record (`type == 2`) as sent by the logbook endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    factory_timestamp: str = Field(..., alias="FactoryTimestamp")
    timestamp: str = Field(..., alias="Timestamp")
    type: int = Field(..., description="Always 2 for alarms")
    alarm_type: int = Field(..., alias="alarmType", description="0 low, 1 high")


class AlarmEvent(BaseModel):
    """A normalized alarm event."""

    timestamp: datetime = Field(..., description="Absolute time of the alarm")
    kind: AlarmKind = Field(..., description="Low or high alarm")

    @property
    def id(self) -> int:
        # Two alarms within the same second share an id.
        return int(self.timestamp.timestamp())

    def __str__(self) -> str:
        return f"{self.timestamp.isoformat()}: {self.kind.value.upper()}"
