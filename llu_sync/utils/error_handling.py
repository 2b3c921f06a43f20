from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'
    CRITICAL = 'critical'


class LibreLinkUpError(Exception):
    """Base class for errors surfaced to callers of the sync client."""

    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class NoConnectionError(LibreLinkUpError):
    """Transport failure, or a response body that is not JSON at all."""


class NotAuthenticatedError(LibreLinkUpError):
    """The service rejected the credentials or the session token."""


class JSONDecodingError(LibreLinkUpError):
    """The response is JSON but lacks the structure needed to proceed."""


class RecordDecodeError(Exception):
    """A single wire record could not be decoded; the batch skips it."""
    def __init__(self, message: str, field: Optional[str] = None, severity: ErrorSeverity = ErrorSeverity.LOW):
        self.message = message
        self.field = field
        self.severity = severity
        super().__init__(f"{field + ': ' if field else ''}{message}")


class ErrorCollector:
    """
    Collects and reports per-record errors during batch decoding.
    """
    def __init__(self):
        self.errors: List[Dict[str, Any]] = []

    def add_error(self, error_type: str, field: Optional[str], message: str, severity: ErrorSeverity = ErrorSeverity.MEDIUM):
        self.errors.append({
            'type': error_type,
            'field': field,
            'message': message,
            'severity': severity.value
        })

    def extend(self, other: "ErrorCollector") -> None:
        self.errors.extend(other.errors)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def to_human_readable(self) -> str:
        return '\n'.join([
            f"[{e['severity'].upper()}] {e['type']} - {e['field'] or ''}: {e['message']}" for e in self.errors
        ])

    def get_errors(self) -> List[Dict[str, Any]]:
        return self.errors
