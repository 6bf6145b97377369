"""
Tests for settings and startup validation.
"""

import pytest

from gasless_relayer.config import Settings
from gasless_relayer.errors import ConfigurationError

TEST_KEY = "0x" + "11" * 32
PAYMENT_PROCESSOR = "0x" + "22" * 20


def make_settings(**overrides) -> Settings:
    values = {
        "relayer_private_key": TEST_KEY,
        "payment_processor_address": PAYMENT_PROCESSOR,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        settings = make_settings()
        assert settings.gas_limit == 500_000
        assert settings.balance_check_interval_seconds == 300
        assert settings.min_balance_wei == 20_000_000_000_000_000
        assert settings.webhook_url is None

    def test_rpc_url_env_alias(self, monkeypatch):
        monkeypatch.setenv("SEPOLIA_RPC_URL", "http://localhost:8545")
        assert make_settings().rpc_url == "http://localhost:8545"


class TestStartupValidation:
    """Tests for validate_for_startup."""

    def test_valid(self):
        make_settings().validate_for_startup()

    def test_missing_private_key(self):
        with pytest.raises(ConfigurationError, match="RELAYER_PRIVATE_KEY"):
            make_settings(relayer_private_key=None).validate_for_startup()

    def test_malformed_private_key(self):
        with pytest.raises(ConfigurationError, match="not a valid private key"):
            make_settings(relayer_private_key="0x1234").validate_for_startup()

    def test_missing_contract(self):
        with pytest.raises(ConfigurationError, match="PAYMENT_PROCESSOR_ADDRESS"):
            make_settings(payment_processor_address=None).validate_for_startup()

    def test_bad_token_address(self):
        with pytest.raises(ConfigurationError, match="NZDD_TOKEN_ADDRESS"):
            make_settings(nzdd_token_address="not-an-address").validate_for_startup()
