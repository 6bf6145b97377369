"""
Tests for GaslessRelayer wiring and lifecycle.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_account import Account
from web3 import Web3

from gasless_relayer.config import Settings
from gasless_relayer.errors import ConfigurationError
from gasless_relayer.outcome import RelayRequest, RelayStatus
from gasless_relayer.relayer import GaslessRelayer

TEST_KEY = "0x" + "11" * 32


def make_settings(**overrides) -> Settings:
    values = {
        "relayer_private_key": TEST_KEY,
        "payment_processor_address": "0x" + "22" * 20,
        "simulate_before_submit": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_evm(balance: int) -> MagicMock:
    evm = MagicMock()
    evm.get_balance = AsyncMock(return_value=balance)
    evm.close = AsyncMock()
    return evm


class TestGaslessRelayer:
    """Tests for GaslessRelayer."""

    def test_refuses_to_start_without_key(self):
        with pytest.raises(ConfigurationError):
            GaslessRelayer(make_settings(relayer_private_key=None), evm_client=make_evm(0))

    def test_wires_components_from_settings(self):
        settings = make_settings(gas_limit=300_000, min_balance_eth="0.5")

        relayer = GaslessRelayer(settings, evm_client=make_evm(0))

        assert relayer.address == Account.from_key(TEST_KEY).address
        assert relayer.engine.gas_limit == 300_000
        assert relayer.engine.simulate is False
        assert relayer.monitor.threshold == Web3.to_wei("0.5", "ether")
        assert relayer.capabilities.names() == ["create_wallet", "transfer"]
        assert not relayer.notifier.enabled

    @pytest.mark.asyncio
    async def test_relay_rejects_when_underfunded(self):
        evm = make_evm(Web3.to_wei("0.01", "ether"))
        relayer = GaslessRelayer(make_settings(), evm_client=evm)

        outcome = await relayer.relay(
            RelayRequest(
                capability="create_wallet",
                arguments={
                    "user_wallet": "0x" + "33" * 20,
                    "email": "user@example.com",
                    "ird_number": "1",
                },
            )
        )

        assert outcome.status == RelayStatus.REJECTED
        evm.send_raw_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """Startup reads the balance once; the timer waits an interval."""
        evm = make_evm(Web3.to_wei(1, "ether"))
        relayer = GaslessRelayer(make_settings(), evm_client=evm)

        await relayer.start()
        await relayer.stop()

        assert evm.get_balance.await_count == 1
        evm.close.assert_awaited_once()
