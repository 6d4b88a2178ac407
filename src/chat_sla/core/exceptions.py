"""
Core Exceptions
================

Every error the engine raises derives from ApplicationException and carries
a message plus a details dict that is safe to attach to a log record.

Domain errors (bad intervals) stay per-chat; repository and configuration
errors are what can end a recalculation run early.
"""

from datetime import datetime
from typing import Optional


class ApplicationException(Exception):
    """Root of the engine's exception hierarchy."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """A chat or calendar that the SLA rules cannot measure."""


class RepositoryException(ApplicationException):
    """Reading chats or settings, or writing metrics, failed."""


class ValidationException(ApplicationException):
    """A request parameter is out of range."""


class ResourceNotFoundException(ApplicationException):
    """A chat (or other addressed record) does not exist."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """SLA or office-hours configuration cannot be loaded or is invalid."""


class InvalidIntervalError(DomainException):
    """Raised when a time interval cannot be measured (end before start, naive instants)."""

    def __init__(
        self,
        start: datetime,
        end: datetime,
        reason: str = "start must not be after end",
        details: Optional[dict] = None
    ):
        self.start = start
        self.end = end
        super().__init__(
            f"Invalid interval [{start.isoformat()}, {end.isoformat()}]: {reason}",
            details or {"start": start.isoformat(), "end": end.isoformat()}
        )


class RecalculationAbortedException(ApplicationException):
    """Raised when a recalculation run cannot continue (e.g. the next batch cannot be fetched)."""

    def __init__(self, stage: str, message: str, details: Optional[dict] = None):
        self.stage = stage
        super().__init__(f"Recalculation aborted during {stage}: {message}", details)
