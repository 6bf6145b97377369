"""
Relay request, outcome and notification event types.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from web3 import Web3

from .errors import FailureReason


class RelayStatus(str, Enum):
    """Terminal (or, for SUBMITTED, last observed) state of a relay."""

    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class RelayRequest:
    """Caller-supplied parameters for one relay operation."""

    capability: str
    arguments: dict[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass(frozen=True)
class RelayOutcome:
    """Result of one RelayRequest."""

    status: RelayStatus
    tx_hash: Optional[str] = None
    fee_spent: Optional[int] = None  # wei
    gas_used: Optional[int] = None
    block_number: Optional[int] = None
    reason: Optional[FailureReason] = None
    detail: Optional[str] = None  # raw provider detail, for operators

    @classmethod
    def submitted(cls, tx_hash: str) -> "RelayOutcome":
        return cls(status=RelayStatus.SUBMITTED, tx_hash=tx_hash)

    @classmethod
    def confirmed(
        cls,
        tx_hash: str,
        fee_spent: int,
        gas_used: Optional[int] = None,
        block_number: Optional[int] = None,
    ) -> "RelayOutcome":
        return cls(
            status=RelayStatus.CONFIRMED,
            tx_hash=tx_hash,
            fee_spent=fee_spent,
            gas_used=gas_used,
            block_number=block_number,
        )

    @classmethod
    def rejected(cls, reason: FailureReason, detail: Optional[str] = None) -> "RelayOutcome":
        return cls(status=RelayStatus.REJECTED, reason=reason, detail=detail)

    @classmethod
    def failed(
        cls,
        reason: FailureReason,
        detail: Optional[str] = None,
        tx_hash: Optional[str] = None,
        fee_spent: Optional[int] = None,
        gas_used: Optional[int] = None,
    ) -> "RelayOutcome":
        return cls(
            status=RelayStatus.FAILED,
            reason=reason,
            detail=detail,
            tx_hash=tx_hash,
            fee_spent=fee_spent,
            gas_used=gas_used,
        )

    @property
    def success(self) -> bool:
        return self.status in (RelayStatus.SUBMITTED, RelayStatus.CONFIRMED)


@dataclass(frozen=True)
class NotificationEvent:
    """
    Snapshot of a RelayOutcome plus request metadata.

    Serialized as the webhook payload; never persisted.
    """

    kind: str
    request_id: str
    capability: str
    status: RelayStatus
    subject: dict[str, Any] = field(default_factory=dict)
    tx_hash: Optional[str] = None
    fee_spent: Optional[int] = None
    gas_used: Optional[int] = None
    reason: Optional[FailureReason] = None
    relayer_address: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_outcome(
        cls,
        kind: str,
        request: RelayRequest,
        outcome: RelayOutcome,
        subject: Optional[dict[str, Any]] = None,
        relayer_address: Optional[str] = None,
    ) -> "NotificationEvent":
        return cls(
            kind=kind,
            request_id=request.request_id,
            capability=request.capability,
            status=outcome.status,
            subject=dict(subject or {}),
            tx_hash=outcome.tx_hash,
            fee_spent=outcome.fee_spent,
            gas_used=outcome.gas_used,
            reason=outcome.reason,
            relayer_address=relayer_address,
        )

    def to_payload(self) -> dict[str, Any]:
        """Webhook JSON body. Subject fields are merged at the top level."""
        payload: dict[str, Any] = {
            "action": self.kind,
            "requestId": self.request_id,
            "capability": self.capability,
            "status": self.status.value,
            **self.subject,
            "txHash": self.tx_hash,
            "timestamp": self.timestamp.isoformat(),
            "relayerAddress": self.relayer_address,
        }
        if self.gas_used is not None:
            payload["gasUsed"] = str(self.gas_used)
        if self.fee_spent is not None:
            payload["feeSpent"] = str(Web3.from_wei(self.fee_spent, "ether"))
        if self.reason is not None:
            payload["reason"] = self.reason.value
            payload["reasonCode"] = self.reason.code
        return payload
