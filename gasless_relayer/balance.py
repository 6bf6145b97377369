"""
Relayer balance monitoring.

Two independent consumers share ``read_balance``: the background timer
(observability only) and the engine's per-request preflight check. No
balance is cached between them.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

from web3 import Web3
import structlog

logger = structlog.get_logger()


class BalanceSource(Protocol):
    async def get_balance(self, address: str) -> int: ...


@dataclass(frozen=True)
class BalanceStatus:
    """Snapshot of the relayer balance against the funds threshold."""

    address: str
    balance: int  # wei
    threshold: int  # wei
    sufficient: bool

    @property
    def balance_eth(self) -> Decimal:
        return Web3.from_wei(self.balance, "ether")

    @property
    def threshold_eth(self) -> Decimal:
        return Web3.from_wei(self.threshold, "ether")


class BalanceMonitor:
    """Reads the relayer balance and classifies it against a floor."""

    def __init__(
        self,
        chain: BalanceSource,
        address: str,
        threshold: int,
        interval_seconds: float = 300,
        funding_url: Optional[str] = None,
    ):
        self.chain = chain
        self.address = address
        self.threshold = threshold
        self.interval_seconds = interval_seconds
        self.funding_url = funding_url
        self._task: Optional[asyncio.Task] = None

    @staticmethod
    def is_sufficient(balance: int, threshold: int) -> bool:
        return balance >= threshold

    async def read_balance(self) -> Optional[int]:
        """
        Read the relayer balance.

        Returns None when the read fails. Callers gating a request on the
        result must treat None as insufficient whatever the threshold.
        """
        try:
            balance = await self.chain.get_balance(self.address)
        except Exception as e:
            logger.error("balance_check_failed", address=self.address, error=str(e))
            return None

        logger.debug(
            "relayer_balance",
            address=self.address,
            balance_eth=str(Web3.from_wei(balance, "ether")),
        )
        return balance

    async def check_balance(self) -> int:
        """Read the relayer balance; 0 when the read fails."""
        balance = await self.read_balance()
        return 0 if balance is None else balance

    async def status(self) -> BalanceStatus:
        balance = await self.read_balance()
        return BalanceStatus(
            address=self.address,
            balance=balance or 0,
            threshold=self.threshold,
            sufficient=balance is not None and self.is_sufficient(balance, self.threshold),
        )

    async def check_and_alert(self) -> BalanceStatus:
        """One monitoring tick: read, log, alert when low."""
        status = await self.status()
        logger.info(
            "relayer_balance_checked",
            address=status.address,
            balance_eth=str(status.balance_eth),
            min_balance_eth=str(status.threshold_eth),
        )
        if not status.sufficient:
            logger.warning(
                "low_gas_balance_alert",
                address=status.address,
                balance_eth=str(status.balance_eth),
                min_balance_eth=str(status.threshold_eth),
                funding_url=self.funding_url,
            )
        return status

    async def run(self) -> None:
        """
        Check the balance every ``interval_seconds`` until cancelled.

        The first check runs one interval after start; callers wanting an
        immediate reading call ``check_and_alert`` first.
        """
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.check_and_alert()

    def start(self) -> asyncio.Task:
        """Start the background timer on the running loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run())
            logger.info("balance_monitor_started", interval_seconds=self.interval_seconds)
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("balance_monitor_stopped")
