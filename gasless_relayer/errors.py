"""
Error types and submission error classification.

Chain client failures are re-raised as SubmissionError so that raw provider
exceptions never reach the gateway. The engine maps each SubmissionError to
a FailureReason with a stable machine code.
"""

import asyncio
from enum import Enum
from typing import Any, Optional


class FailureReason(str, Enum):
    """Caller-meaningful reasons for Rejected and Failed outcomes."""

    # Admission (no chain interaction)
    INSUFFICIENT_FUNDS = "insufficient relayer funds"
    INVALID_REQUEST = "invalid request"

    # Submission
    DUPLICATE_ACTION = "duplicate action"
    RELAYER_UNDERFUNDED = "relayer underfunded at submit time"
    NODE_UNAVAILABLE = "node unavailable"
    TRANSACTION_REVERTED = "transaction reverted"
    RELAY_FAILED = "relay failed"

    # Confirmation
    CONFIRMATION_TIMEOUT = "confirmation timeout"

    @property
    def code(self) -> str:
        """Stable machine-readable code (e.g. ``duplicate_action``)."""
        return self.name.lower()

    @property
    def is_ambiguous(self) -> bool:
        """True when the transaction may still land on-chain."""
        return self is FailureReason.CONFIRMATION_TIMEOUT


class RelayerError(Exception):
    """Base class for relayer errors."""


class ConfigurationError(RelayerError):
    """Startup configuration is missing or invalid; the service must not start."""


class InvalidRequestError(RelayerError):
    """Relay request arguments are malformed or the capability is unknown."""


class SubmissionError(RelayerError):
    """A chain call failed. ``code`` is the provider error code when known."""

    def __init__(self, message: str, code: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"[{self.code}] {self.message}"


# Substrings are matched against the lowercased provider message.
DUPLICATE_MARKERS = (
    "already received bonus",
    "already processed",
    "already registered",
    "already created",
)
UNDERFUNDED_MARKERS = (
    "insufficient funds",
)
UNAVAILABLE_MARKERS = (
    "connection refused",
    "cannot connect",
    "connection reset",
    "timed out",
    "service unavailable",
    "bad gateway",
)
REVERT_MARKERS = (
    "execution reverted",
    "reverted",
)

NETWORK_ERROR_CODE = "network"


def as_submission_error(exc: BaseException) -> SubmissionError:
    """
    Normalize any chain client exception into a SubmissionError.

    JSON-RPC errors surface from web3 either as a dict in ``args[0]``
    (``{"code": -32000, "message": "..."}``) or as a plain message.
    Socket level failures are tagged with the ``network`` code.
    """
    if isinstance(exc, SubmissionError):
        return exc

    if isinstance(exc, (OSError, asyncio.TimeoutError)):
        return SubmissionError(str(exc) or type(exc).__name__, code=NETWORK_ERROR_CODE)

    payload = exc.args[0] if exc.args else None
    if isinstance(payload, dict):
        return SubmissionError(
            str(payload.get("message", payload)),
            code=payload.get("code"),
        )

    return SubmissionError(str(exc) or type(exc).__name__)


def classify_submission_error(error: BaseException) -> FailureReason:
    """
    Map a submission error to a FailureReason.

    Messages matching no known marker fall into RELAY_FAILED.
    """
    submission_error = as_submission_error(error)
    message = submission_error.message.lower()

    if any(marker in message for marker in DUPLICATE_MARKERS):
        return FailureReason.DUPLICATE_ACTION
    if any(marker in message for marker in UNDERFUNDED_MARKERS):
        return FailureReason.RELAYER_UNDERFUNDED
    if submission_error.code == NETWORK_ERROR_CODE or any(
        marker in message for marker in UNAVAILABLE_MARKERS
    ):
        return FailureReason.NODE_UNAVAILABLE
    if any(marker in message for marker in REVERT_MARKERS):
        return FailureReason.TRANSACTION_REVERTED
    return FailureReason.RELAY_FAILED
