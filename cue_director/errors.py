"""
Director Errors - Domain-specific error types.

Error hierarchy:
    DirectorError (base)
    ├── ResolutionError        (no asset found for a query or id)
    ├── AssetLoadError         (network/decode failure after resolution)
    ├── StaleEpochError        (work finished after its epoch was superseded)
    ├── QuotaExhaustedError    (remote collaborator asked us to back off)
    └── DecisionValidationError (remote decision has an unknown shape)

None of these are fatal. Each component raises them internally and converts
them into a ``None``/failure result at its own boundary, so a failure never
unwinds through more than one component.
"""

from __future__ import annotations

from typing import Any


class DirectorError(Exception):
    """Base error for all director-related errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ResolutionError(DirectorError):
    """
    Raised when no source can produce a playable asset.

    Policy: the request is dropped, no retry within the same decision cycle.
    """

    def __init__(
        self,
        query: str,
        sound_type: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message or f"No asset found for {sound_type} '{query}'", details)
        self.query = query
        self.sound_type = sound_type


class AssetLoadError(DirectorError):
    """
    Raised when a resolved URL cannot be fetched, decoded or started.

    Policy: surface a user-visible status and drop that specific sound.
    """

    def __init__(
        self,
        url: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message or f"Failed to load asset: {url}", details)
        self.url = url


class StaleEpochError(DirectorError):
    """Raised when asynchronous work completes after its epoch advanced."""

    def __init__(
        self,
        captured: int,
        current: int,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"Stale epoch {captured} (current {current})", details)
        self.captured = captured
        self.current = current


class QuotaExhaustedError(DirectorError):
    """
    Raised when a remote collaborator reports rate/quota exhaustion.

    The caller enters a backoff window of ``retry_after_s`` seconds; local
    cue logic keeps working in the meantime.
    """

    def __init__(
        self,
        service: str,
        retry_after_s: float,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            f"{service} quota exhausted, retry after {retry_after_s:.1f}s",
            details,
        )
        self.service = service
        self.retry_after_s = retry_after_s


class DecisionValidationError(DirectorError):
    """Raised when a remote decision payload has an unknown shape."""

    def __init__(
        self,
        field: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(f"Invalid decision field '{field}': {message}", details)
        self.field = field
