"""
Logging utilities for redacting sensitive data from logs and error messages.

Example:
    from llu_sync.utils.logging_utils import redact_sensitive_data
    safe = redact_sensitive_data({'password': 'abc', 'email': 'bob@example.com'})
    # safe == {'password': '***REDACTED***', 'email': '***REDACTED***'}
"""

import json
import logging
from datetime import datetime, timezone

SENSITIVE_KEYS = {
    'password', 'email', 'token', 'authorization', 'account-id',
    'id', 'patientid', 'patient_id', 'firstname', 'lastname',
}

REDACTED = '***REDACTED***'

# Attributes every LogRecord carries; anything else was passed through `extra`.
_RESERVED_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}


def redact_sensitive_data(obj):
    """
    Recursively redacts sensitive fields in dicts/lists.
    Keys matched (case-insensitive): password, email, token, authorization,
    account-id, id, patientId, firstName, lastName
    """
    if isinstance(obj, dict):
        return {
            k: (REDACTED if str(k).lower() in SENSITIVE_KEYS else redact_sensitive_data(v))
            for k, v in obj.items()
        }
    elif isinstance(obj, list):
        return [redact_sensitive_data(i) for i in obj]
    else:
        return obj


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON with standard fields plus any `extra` fields.
    """
    def format(self, record):
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key not in log_record:
                log_record[key] = value
        return json.dumps(log_record, default=str)
