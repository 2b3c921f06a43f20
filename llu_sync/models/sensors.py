"""Models for cloud-reported and locally tracked sensors."""

from datetime import datetime, timezone
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from llu_sync.utils.normalization import epoch_to_datetime


class ProductType(IntEnum):
    """Sensor product family code (`pt`)."""

    LIBRE_1_2 = 3
    LIBRE_3 = 4


class ActiveSensor(BaseModel):
    """One `activeSensors[].sensor` entry of the graph response."""

    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(..., alias="deviceId", description="Id of the reader device")
    sn: str = Field(..., description="Serial number as formatted by the service")
    a: int = Field(..., description="Activation time, Unix seconds")
    pt: int = Field(..., description="Product type, 3 Libre 1/2, 4 Libre 3")

    @property
    def activation_time(self) -> datetime:
        return epoch_to_datetime(self.a)


class SensorIdentity(BaseModel):
    """The sensor tracked by the device layer."""

    serial: str = Field(..., description="Serial as discovered locally")
    product_type: Optional[ProductType] = Field(None, description="Product family")
    activation_time: Optional[datetime] = Field(None, description="Activation time reported by the cloud")
    age_minutes: Optional[int] = Field(None, description="Minutes since activation")
    last_reading_date: Optional[datetime] = Field(None, description="Time of the last reading seen")

    def with_activation(self, activation_time: datetime, now: Optional[datetime] = None) -> "SensorIdentity":
        """Return a copy updated with the cloud activation time and derived age."""
        now = now or datetime.now(timezone.utc)
        age = int((now - activation_time).total_seconds()) // 60
        return self.model_copy(update={"activation_time": activation_time, "age_minutes": age})
