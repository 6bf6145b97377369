"""
Relayer service wiring.

Builds the chain client, balance monitor, notifier and relay engine from
settings and owns their lifecycle.
"""

from typing import Optional

from eth_account import Account
import structlog

from .balance import BalanceMonitor
from .capabilities import build_default_registry
from .config import Settings
from .engine import RelayEngine
from .evm import EvmClient
from .notifier import NotificationDispatcher
from .outcome import RelayOutcome, RelayRequest

logger = structlog.get_logger()


class GaslessRelayer:
    """
    Main relayer that:
    1. Holds the funded relayer account
    2. Monitors its balance in the background
    3. Relays capability calls through the RelayEngine
    """

    def __init__(
        self,
        settings: Settings,
        evm_client: Optional[EvmClient] = None,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        # Refuse to start with a nonfunctional relayer identity
        settings.validate_for_startup()

        self.settings = settings
        self.account = Account.from_key(settings.relayer_private_key)

        self.evm = evm_client or EvmClient(
            rpc_url=settings.rpc_url,
            payment_processor_address=settings.payment_processor_address,
            poll_latency=settings.confirmation_poll_seconds,
        )
        self.monitor = BalanceMonitor(
            self.evm,
            self.account.address,
            threshold=settings.min_balance_wei,
            interval_seconds=settings.balance_check_interval_seconds,
            funding_url=settings.funding_url,
        )
        self.notifier = notifier or NotificationDispatcher(
            settings.webhook_url,
            timeout_seconds=settings.webhook_timeout_seconds,
        )
        self.capabilities = build_default_registry(
            settings.payment_processor_address,
            bonus_amount=settings.welcome_bonus_amount,
            token_decimals=settings.token_decimals,
        )
        self.engine = RelayEngine(
            chain=self.evm,
            account=self.account,
            monitor=self.monitor,
            notifier=self.notifier,
            capabilities=self.capabilities,
            gas_limit=settings.gas_limit,
            confirmation_timeout=settings.confirmation_timeout_seconds,
            simulate=settings.simulate_before_submit,
        )

        logger.info(
            "relayer_initialized",
            relayer_address=self.account.address,
            payment_processor=settings.payment_processor_address,
            min_balance_eth=str(settings.min_balance_eth),
            gas_limit=settings.gas_limit,
            webhook_enabled=self.notifier.enabled,
            capabilities=self.capabilities.names(),
        )

    @property
    def address(self) -> str:
        return self.account.address

    async def relay(self, request: RelayRequest, wait: bool = True) -> RelayOutcome:
        return await self.engine.relay(request, wait=wait)

    async def start(self) -> None:
        """Check the initial balance and start the background monitor."""
        await self.monitor.check_and_alert()
        self.monitor.start()
        logger.info("relayer_started", relayer_address=self.address)

    async def stop(self) -> None:
        """Stop monitoring, flush notifications, close connections."""
        logger.info("relayer_stopping")
        await self.monitor.stop()
        await self.notifier.close()
        await self.evm.close()
