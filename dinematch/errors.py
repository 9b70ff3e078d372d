"""Domain error codes shared by the session, catalog and location layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    SESSION_CLOSED = "SESSION_CLOSED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    NOT_SESSION_HOST = "NOT_SESSION_HOST"
    CONFLICT = "CONFLICT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_POSTAL_CODE = "INVALID_POSTAL_CODE"
    LOCATION_TIMEOUT = "LOCATION_TIMEOUT"
    LOCATION_PERMISSION_DENIED = "LOCATION_PERMISSION_DENIED"
    LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
    CATALOG_UNAVAILABLE = "CATALOG_UNAVAILABLE"
    CATALOG_TIMEOUT = "CATALOG_TIMEOUT"
    FETCH_SUPERSEDED = "FETCH_SUPERSEDED"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    @property
    def retryable(self) -> bool:
        return self.code in (ErrorCode.CONFLICT, ErrorCode.CATALOG_TIMEOUT, ErrorCode.LOCATION_TIMEOUT)


class SessionNotFoundError(DomainError):
    """Raised when a session does not exist (or has been destroyed)."""

    def __init__(self, session_id: str | None = None) -> None:
        super().__init__(
            code=ErrorCode.SESSION_NOT_FOUND,
            message="Session not found",
        )
        self.session_id = session_id


class SessionExpiredError(DomainError):
    """Raised when a session is past its expiry time."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            code=ErrorCode.SESSION_EXPIRED,
            message="Session has expired",
        )
        self.session_id = session_id


class SessionClosedError(DomainError):
    """Raised when joining a session that has already completed."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            code=ErrorCode.SESSION_CLOSED,
            message="Session is no longer accepting participants",
        )
        self.session_id = session_id


class InvalidStatusTransitionError(DomainError):
    """Raised when a status change is not allowed by the session lifecycle."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_STATUS_TRANSITION,
            message=f"Cannot move session from {current} to {target}",
        )


class NotSessionHostError(DomainError):
    """Raised when a host-only action is attempted by another participant."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            code=ErrorCode.NOT_SESSION_HOST,
            message="Only the session host can do this",
        )
        self.user_id = user_id


class ConflictError(DomainError):
    """Raised when a concurrent write to the same session won the race."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            code=ErrorCode.CONFLICT,
            message="Session was modified concurrently, retry the request",
        )
        self.session_id = session_id


class ValidationError(DomainError):
    """Raised for malformed input before any I/O is attempted."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_FAILED, message=message)


class InvalidPostalCodeError(DomainError):
    """Raised when a postal code is not a valid US ZIP or ZIP+4."""

    def __init__(self, postal_code: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_POSTAL_CODE,
            message="Invalid postal code format",
        )
        self.postal_code = postal_code


class LocationTimeoutError(DomainError):
    def __init__(self, seconds: float) -> None:
        super().__init__(
            code=ErrorCode.LOCATION_TIMEOUT,
            message=f"Location request timed out after {seconds:g}s",
        )


class LocationPermissionDeniedError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.LOCATION_PERMISSION_DENIED,
            message="Location permission denied",
        )


class LocationNotFoundError(DomainError):
    def __init__(self, query: str) -> None:
        super().__init__(
            code=ErrorCode.LOCATION_NOT_FOUND,
            message="No location found for the provided postal code",
        )
        self.query = query


class CatalogError(DomainError):
    """Raised when the restaurant catalog cannot be fetched or parsed."""

    def __init__(self, message: str = "Restaurant search is unavailable") -> None:
        super().__init__(code=ErrorCode.CATALOG_UNAVAILABLE, message=message)


class CatalogTimeoutError(DomainError):
    def __init__(self, seconds: float) -> None:
        super().__init__(
            code=ErrorCode.CATALOG_TIMEOUT,
            message=f"Restaurant search timed out after {seconds:g}s",
        )


class FetchSupersededError(DomainError):
    """Raised for a catalog fetch that was replaced by a newer one."""

    def __init__(self, generation: int) -> None:
        super().__init__(
            code=ErrorCode.FETCH_SUPERSEDED,
            message="Restaurant search was replaced by a newer search",
        )
        self.generation = generation
