"""
Relay engine - preflight, sign, submit, confirm, classify.

Per-request states:

    Received -> FundsChecked -> Submitted -> Confirmed
    Received -> Rejected                    (no chain interaction)
    FundsChecked / Submitted -> Failed

The nonce read, signing and submission for the relayer account run under
one asyncio.Lock so that concurrent requests get distinct, gap-free nonces
in submission order. The lock is released before the confirmation wait.
"""

import asyncio
from typing import Optional, Protocol

from eth_account.signers.local import LocalAccount
import structlog

from .balance import BalanceMonitor
from .capabilities import Capability, CapabilityRegistry, ContractCall
from .errors import (
    FailureReason,
    InvalidRequestError,
    SubmissionError,
    as_submission_error,
    classify_submission_error,
)
from .evm import Confirmation
from .notifier import NotificationDispatcher
from .outcome import NotificationEvent, RelayOutcome, RelayRequest, RelayStatus
from .signer import SignedCall, sign_call

logger = structlog.get_logger()


class ChainClient(Protocol):
    async def get_gas_price(self) -> int: ...

    async def get_chain_id(self) -> int: ...

    async def get_nonce(self, address: str) -> int: ...

    async def simulate(self, call: ContractCall, sender: str) -> None: ...

    async def send_raw_transaction(self, raw_transaction: bytes) -> str: ...

    async def wait_for_confirmation(self, tx_hash: str, timeout: float) -> Confirmation: ...


class RelayEngine:
    """
    Orchestrates a single relayed call on behalf of a caller.

    One engine owns one relayer account for the process lifetime.
    """

    def __init__(
        self,
        chain: ChainClient,
        account: LocalAccount,
        monitor: BalanceMonitor,
        notifier: NotificationDispatcher,
        capabilities: CapabilityRegistry,
        gas_limit: int = 500_000,
        confirmation_timeout: float = 120.0,
        simulate: bool = True,
    ):
        self.chain = chain
        self.account = account
        self.monitor = monitor
        self.notifier = notifier
        self.capabilities = capabilities
        self.gas_limit = gas_limit
        self.confirmation_timeout = confirmation_timeout
        self.simulate = simulate

        self._nonce_lock = asyncio.Lock()
        self._next_nonce: Optional[int] = None

    @property
    def address(self) -> str:
        return self.account.address

    async def relay(self, request: RelayRequest, wait: bool = True) -> RelayOutcome:
        """
        Relay one request.

        Args:
            request: capability name and arguments
            wait: if False, return Submitted right after the node accepts
                the transaction instead of waiting for the receipt

        Returns:
            RelayOutcome; never raises for chain or notification errors
        """
        log = logger.bind(request_id=request.request_id, capability=request.capability)
        log.info("relay_received")

        # Received -> (validation) -> FundsChecked
        try:
            capability = self.capabilities.get(request.capability)
            call = capability.build(request.arguments)
        except InvalidRequestError as e:
            log.info("relay_rejected", reason=FailureReason.INVALID_REQUEST.code, error=str(e))
            return RelayOutcome.rejected(FailureReason.INVALID_REQUEST, detail=str(e))

        balance = await self.monitor.read_balance()
        if balance is None:
            log.warning("relay_rejected", reason=FailureReason.INSUFFICIENT_FUNDS.code)
            return RelayOutcome.rejected(
                FailureReason.INSUFFICIENT_FUNDS,
                detail="relayer balance could not be read",
            )
        if not self.monitor.is_sufficient(balance, self.monitor.threshold):
            log.warning(
                "relay_rejected",
                reason=FailureReason.INSUFFICIENT_FUNDS.code,
                balance=balance,
                threshold=self.monitor.threshold,
            )
            return RelayOutcome.rejected(
                FailureReason.INSUFFICIENT_FUNDS,
                detail=f"balance {balance} wei below threshold {self.monitor.threshold} wei",
            )

        # FundsChecked -> Submitted
        try:
            if self.simulate:
                await self._simulate(call)
            signed = await self._sign_and_submit(call)
        except SubmissionError as e:
            reason = classify_submission_error(e)
            log.error("relay_submission_failed", reason=reason.code, error=str(e))
            outcome = RelayOutcome.failed(reason, detail=str(e))
            self._dispatch(request, capability, outcome)
            return outcome

        log.info("relay_submitted", tx_hash=signed.tx_hash, nonce=signed.nonce)

        if not wait:
            outcome = RelayOutcome.submitted(signed.tx_hash)
            self._dispatch(request, capability, outcome)
            return outcome

        # Submitted -> Confirmed / Failed
        outcome = await self._confirm(signed, log)
        self._dispatch(request, capability, outcome)
        return outcome

    async def _simulate(self, call: ContractCall) -> None:
        try:
            await self.chain.simulate(call, self.address)
        except Exception as e:
            raise as_submission_error(e) from e

    async def _sign_and_submit(self, call: ContractCall) -> SignedCall:
        """
        Read nonce, sign and submit under the account lock.

        The local nonce only advances once the node accepts a transaction,
        so a rejected submission does not leave a gap.
        """
        async with self._nonce_lock:
            try:
                chain_id = await self.chain.get_chain_id()
                chain_nonce = await self.chain.get_nonce(self.address)
                if self._next_nonce is None:
                    nonce = chain_nonce
                else:
                    nonce = max(chain_nonce, self._next_nonce)

                # Gas price is sampled immediately before submission.
                gas_price = await self.chain.get_gas_price()
                signed = sign_call(
                    self.account,
                    call,
                    nonce=nonce,
                    gas_limit=self.gas_limit,
                    gas_price=gas_price,
                    chain_id=chain_id,
                )
                tx_hash = await self.chain.send_raw_transaction(signed.raw_transaction)
            except Exception as e:
                raise as_submission_error(e) from e

            if tx_hash.lower() != signed.tx_hash.lower():
                logger.warning(
                    "tx_hash_mismatch",
                    expected=signed.tx_hash,
                    returned=tx_hash,
                    nonce=nonce,
                )

            self._next_nonce = nonce + 1
            return signed

    async def _confirm(self, signed: SignedCall, log) -> RelayOutcome:
        timeout = self.confirmation_timeout
        try:
            confirmation = await asyncio.wait_for(
                self.chain.wait_for_confirmation(signed.tx_hash, timeout),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            confirmation = Confirmation(included=False)
        except Exception as e:
            # Submitted but unobservable: outcome is as ambiguous as a timeout.
            log.error("confirmation_wait_failed", tx_hash=signed.tx_hash, error=str(e))
            return RelayOutcome.failed(
                FailureReason.CONFIRMATION_TIMEOUT,
                detail=str(as_submission_error(e)),
                tx_hash=signed.tx_hash,
            )

        if not confirmation.included:
            log.warning("relay_confirmation_timeout", tx_hash=signed.tx_hash, timeout=timeout)
            return RelayOutcome.failed(
                FailureReason.CONFIRMATION_TIMEOUT,
                detail=f"no receipt within {timeout}s; transaction may still be mined",
                tx_hash=signed.tx_hash,
            )

        fee_spent = confirmation.fee_spent
        if not fee_spent and confirmation.gas_used:
            fee_spent = confirmation.gas_used * signed.gas_price

        if not confirmation.succeeded:
            log.error("relay_reverted", tx_hash=signed.tx_hash, gas_used=confirmation.gas_used)
            return RelayOutcome.failed(
                FailureReason.TRANSACTION_REVERTED,
                detail="transaction reverted on-chain",
                tx_hash=signed.tx_hash,
                fee_spent=fee_spent,
                gas_used=confirmation.gas_used,
            )

        log.info(
            "relay_confirmed",
            tx_hash=signed.tx_hash,
            gas_used=confirmation.gas_used,
            fee_spent=fee_spent,
            block_number=confirmation.block_number,
        )
        return RelayOutcome.confirmed(
            signed.tx_hash,
            fee_spent=fee_spent,
            gas_used=confirmation.gas_used,
            block_number=confirmation.block_number,
        )

    def _dispatch(
        self,
        request: RelayRequest,
        capability: Capability,
        outcome: RelayOutcome,
    ) -> None:
        """Hand the outcome to the notifier. Never raises."""
        if outcome.status == RelayStatus.CONFIRMED:
            kind = capability.success_event
        elif outcome.status == RelayStatus.SUBMITTED:
            kind = f"{capability.name}_submitted"
        else:
            kind = "relay_failed"

        try:
            event = NotificationEvent.from_outcome(
                kind,
                request,
                outcome,
                subject=capability.subject(request.arguments),
                relayer_address=self.address,
            )
            self.notifier.notify(event)
        except Exception as e:
            logger.error(
                "notification_dispatch_error",
                request_id=request.request_id,
                error=str(e),
            )
