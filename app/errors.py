"""
Exception taxonomy for the booking engine.

Conflicts and rule violations are ordinary results and never raised.
Everything here is either bad caller input, an unreadable dependency,
a cooperative cancellation, or a lost race at confirmation time.
"""

from __future__ import annotations

from typing import Any


class BookingEngineError(Exception):
    """Base class for all engine errors."""

    error = "engine_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


# ── Input errors (never retried) ──────────────────────────────────────────


class InputError(BookingEngineError):
    error = "invalid_input"


class OutOfWindow(InputError):
    error = "out_of_window"


class InvalidDuration(InputError):
    error = "invalid_duration"


class UnknownCourt(InputError):
    error = "unknown_court"


class UnknownBooking(InputError):
    error = "unknown_booking"


class InvalidCourtTopology(InputError):
    error = "invalid_court_topology"


# ── Dependency errors (fail closed) ───────────────────────────────────────


class EvaluationUnavailable(BookingEngineError):
    """Required state could not be read; the request is neither allowed nor denied."""

    error = "evaluation_unavailable"


class RuleConfigError(EvaluationUnavailable):
    """A stored rule config does not validate against its rule's schema."""

    error = "rule_config_invalid"


class EvaluationCanceled(BookingEngineError):
    error = "evaluation_canceled"


# ── Confirmation ──────────────────────────────────────────────────────────


class SlotTaken(BookingEngineError):
    """Raised by storage when the atomic check-then-insert finds an overlap."""

    error = "slot_taken"

    def __init__(self, message: str, blocking_booking_id: str | None = None) -> None:
        super().__init__(message, blocking_booking_id=blocking_booking_id)
        self.blocking_booking_id = blocking_booking_id


class Retryable(BookingEngineError):
    """Lost a confirmation race; re-run availability and evaluation on fresh data."""

    error = "retryable"
