"""Models for the result of a synchronization run."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from llu_sync.models.alarms import AlarmEvent
from llu_sync.models.glucose import NormalizedReading
from llu_sync.models.sensors import SensorIdentity
from llu_sync.utils.normalization import DISTANT_PAST


class SyncPhase(str, Enum):
    """Phases of one synchronization run."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    GRAPH_FETCHED = "graph_fetched"
    LOGBOOK_FETCHED = "logbook_fetched"


class FetchResult(BaseModel):
    """Everything collected by a graph fetch and its optional logbook fetch."""

    history: List[NormalizedReading] = Field(default_factory=list, description="Graph readings, oldest first, current last")
    logbook_history: List[NormalizedReading] = Field(default_factory=list, description="Logbook readings")
    alarms: List[AlarmEvent] = Field(default_factory=list, description="Logbook alarm events")
    raw_graph: bytes = Field(b"", description="Raw graph response body")
    raw_logbook: bytes = Field(b"", description="Raw logbook response body")
    sensor: Optional[SensorIdentity] = Field(None, description="Tracked sensor after reconciliation")
    activation_reference: datetime = Field(DISTANT_PAST, description="Zero point used for life counts")
    skipped: List[Dict[str, Any]] = Field(default_factory=list, description="Records dropped during decoding")
    logbook_error: Optional[str] = Field(None, description="Why the logbook fetch failed, if it did")
    phase: SyncPhase = Field(SyncPhase.GRAPH_FETCHED, description="Last phase reached")

    @property
    def sensor_age_known(self) -> bool:
        return self.activation_reference != DISTANT_PAST
