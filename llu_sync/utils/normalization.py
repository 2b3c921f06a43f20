from datetime import datetime, timezone, tzinfo
from typing import Any, Optional

LLU_TIMESTAMP_FORMAT = "%m/%d/%Y %I:%M:%S %p"

# Activation reference used when no cloud sensor matches the tracked one.
DISTANT_PAST = datetime(1, 1, 1, tzinfo=timezone.utc)

SAMPLING_INTERVAL_MINUTES = 5


def parse_llu_timestamp(value: Any, tz: Optional[tzinfo] = None) -> datetime:
    """
    Parse a service timestamp such as "1/9/2026 10:41:01 AM".

    The value carries no offset; it is interpreted in `tz`. Without `tz` it
    is read as system local time, each instant getting the UTC offset in
    effect at that moment so daylight-saving changes are honoured.
    Raises ValueError when the value does not match the format.
    """
    if not isinstance(value, str):
        raise ValueError(f"timestamp must be a string, got {type(value).__name__}")
    dt = datetime.strptime(value.strip(), LLU_TIMESTAMP_FORMAT)
    if tz is None:
        return dt.astimezone()
    return dt.replace(tzinfo=tz)


def epoch_to_datetime(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def compute_life_count(reading_time: datetime, activation_reference: datetime) -> int:
    """
    Minutes elapsed since sensor activation, snapped to the 5-minute cadence.

    The service stamps some samples one minute late, so an elapsed count of
    5n+1 is corrected down to 5n.
    """
    life_count = int((reading_time - activation_reference).total_seconds() // 60)
    if life_count % SAMPLING_INTERVAL_MINUTES == 1:
        life_count -= 1
    return life_count


def is_distant_past(activation_reference: datetime) -> bool:
    return activation_reference == DISTANT_PAST


def serial_matches(local_serial: str, cloud_serial: str) -> bool:
    """The locally discovered serial may carry a prefix the cloud omits."""
    if not local_serial or not cloud_serial:
        return False
    return local_serial.strip().upper().endswith(cloud_serial.strip().upper())
