"""
Trade Import - Error Taxonomy.

============================================================
PURPOSE
============================================================
Exception hierarchy for the NT8 trade import pipeline.

ERROR CATEGORIES:
1. Parse Errors - a single token could not be normalized
2. File Errors - the upload as a whole is unusable
3. Storage Errors - the persistence collaborator is unreachable
4. Configuration Errors - invalid import settings
5. State Errors - illegal pipeline state transition

ROW-SCOPED vs CALL-SCOPED:
- Parse errors never escape a row. The mapper converts them
  into FieldError values attached to the row outcome.
- File, storage and configuration errors abort the call.

============================================================
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY
# ============================================================

class Severity(Enum):
    """Exception severity levels for logging."""

    LOW = "low"
    """Row-level problem, reported to the user."""

    MEDIUM = "medium"
    """The call failed but the service is healthy."""

    HIGH = "high"
    """Infrastructure problem, requires attention."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class TradeImportError(Exception):
    """
    Base exception for all trade import errors.

    All exceptions carry:
    - severity: for logging
    - context: for debugging
    - recoverable: whether retrying the call may succeed
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM
    default_recoverable: bool = False

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.recoverable = recoverable if recoverable is not None else self.default_recoverable
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


# ============================================================
# PARSE ERRORS
# ============================================================

class ParseError(TradeImportError):
    """A raw token could not be converted to a typed value."""

    default_severity = Severity.LOW

    def __init__(self, reason: str, raw_value: str, **kwargs):
        context = kwargs.pop("context", {})
        context["raw_value"] = raw_value
        super().__init__(reason, context=context, **kwargs)
        self.reason = reason
        self.raw_value = raw_value


class EmptyValueError(ParseError):
    """Token is empty or whitespace only."""

    def __init__(self, raw_value: str = ""):
        super().__init__("value is empty", raw_value)


class NumberParseError(ParseError):
    """Token is not a locale formatted number."""

    def __init__(self, raw_value: str, reason: str = "not a number"):
        super().__init__(reason, raw_value)


class TimestampParseError(ParseError):
    """Token is not a D/M/YYYY HH:mm:ss timestamp."""

    def __init__(self, raw_value: str, reason: str = "not a valid date/time"):
        super().__init__(reason, raw_value)


# ============================================================
# FILE ERRORS
# ============================================================

class ImportFileError(TradeImportError):
    """The uploaded file cannot be processed at all."""

    def __init__(self, message: str, file_size: Optional[int] = None, **kwargs):
        context = kwargs.pop("context", {})
        if file_size is not None:
            context["file_size"] = file_size
        super().__init__(message, context=context, **kwargs)


class UnreadableFileError(ImportFileError):
    """File is empty, binary, or not decodable as text."""


class FileTooLargeError(ImportFileError):
    """File exceeds the configured upload limit."""

    def __init__(self, file_size: int, max_bytes: int):
        super().__init__(
            f"File of {file_size} bytes exceeds limit of {max_bytes} bytes",
            file_size=file_size,
            context={"max_bytes": max_bytes},
        )
        self.max_bytes = max_bytes


# ============================================================
# STORAGE ERRORS
# ============================================================

class StorageUnavailableError(TradeImportError):
    """The persistence collaborator cannot be reached."""

    default_severity = Severity.HIGH
    default_recoverable = True


class PersistenceError(TradeImportError):
    """A single trade could not be stored."""

    default_recoverable = True


class DuplicateTradeError(PersistenceError):
    """Storage rejected the insert because the duplicate key already exists."""

    def __init__(self, message: str = "Trade already exists", **kwargs):
        super().__init__(message, **kwargs)


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class InvalidConfigError(TradeImportError):
    """Configuration value is invalid."""

    default_severity = Severity.HIGH

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {reason}",
            context={"config_key": key, "actual_value": str(value)[:100], "reason": reason},
        )
        self.key = key


# ============================================================
# STATE ERRORS
# ============================================================

class StateTransitionError(TradeImportError):
    """Invalid pipeline state transition."""

    default_severity = Severity.HIGH

    def __init__(self, from_state: str, to_state: str):
        super().__init__(
            f"Invalid transition: {from_state} -> {to_state}",
            context={"from_state": from_state, "to_state": to_state},
        )
        self.from_state = from_state
        self.to_state = to_state
