"""
Exception taxonomy for the Cachet integration.

A missing component or incident is never an error: lookups return None.
"""

from __future__ import annotations

from typing import Optional


class CachetError(Exception):
    """Base class for every error raised by cachet_sync."""


class ValidationError(CachetError, ValueError):
    """Malformed input rejected before any network call."""


class TransportError(CachetError):
    """Non-success response or network failure while in strict mode."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.reason = reason


class ReconciliationError(CachetError):
    """A unit of work could not save its component or incident."""


class BatchFailedError(CachetError):
    """Raised in strict mode when at least one unit of a batch failed."""

    def __init__(self, report) -> None:
        failed = len(report.failures)
        super().__init__(
            f"{failed} of {len(report.results)} check results failed to reconcile"
        )
        self.report = report
