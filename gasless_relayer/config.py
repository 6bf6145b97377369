"""
Configuration for the Gasless Relayer.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from eth_account import Account
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from web3 import Web3

from .errors import ConfigurationError


class Settings(BaseSettings):
    """
    Relayer configuration settings.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # API Server
    host: str = Field(default="127.0.0.1", description="API host")
    port: int = Field(default=3001, description="API port")
    debug: bool = Field(
        default=False,
        description="Enable debug mode (includes raw error details in responses)",
    )
    allowed_origins: list[str] = Field(default=["*"], description="CORS allowed origins")

    # EVM Network
    rpc_url: str = Field(
        default="https://rpc.sepolia.org",
        description="EVM RPC URL (Sepolia testnet)",
        alias="SEPOLIA_RPC_URL",
    )
    relayer_private_key: Optional[str] = Field(
        default=None,
        description="Private key of the funded relayer account (required)",
    )

    # Contracts
    payment_processor_address: Optional[str] = Field(
        default=None,
        description="PaymentProcessor contract address (required)",
    )
    nzdd_token_address: Optional[str] = Field(
        default=None,
        description="NZDD token contract address",
    )

    # Gas / funds
    gas_limit: int = Field(default=500_000, gt=0, description="Gas ceiling per relayed call")
    min_balance_eth: Decimal = Field(
        default=Decimal("0.02"),
        ge=0,
        description="Minimum relayer balance (ETH) required to relay",
    )
    balance_check_interval_seconds: int = Field(
        default=300,
        gt=0,
        description="Interval of the background balance monitor",
    )
    funding_url: str = Field(
        default="https://sepoliafaucet.com",
        description="Where operators can fund the relayer",
    )

    # Submission
    confirmation_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Maximum wait for a transaction receipt",
    )
    confirmation_poll_seconds: float = Field(default=2.0, gt=0)
    simulate_before_submit: bool = Field(
        default=True,
        description="eth_call the relayed call before spending a nonce on it",
    )

    # Webhook
    webhook_url: Optional[str] = Field(
        default=None,
        description="Outcome notification endpoint (disabled when unset)",
    )
    webhook_timeout_seconds: float = Field(default=10.0, gt=0)

    # Business
    welcome_bonus_amount: str = Field(default="50", description="NZDD credited on wallet creation")
    token_decimals: int = Field(default=18, ge=0)
    redirect_base_url: Optional[str] = Field(
        default=None,
        description="Frontend URL the create-wallet response redirects to",
    )

    # Rate limits (per client IP)
    create_wallet_rate_limit: int = Field(default=5, gt=0)
    create_wallet_rate_window_seconds: int = Field(default=15 * 60, gt=0)
    transaction_rate_limit: int = Field(default=10, gt=0)
    transaction_rate_window_seconds: int = Field(default=60, gt=0)

    @property
    def min_balance_wei(self) -> int:
        """FundsThreshold in wei."""
        return Web3.to_wei(self.min_balance_eth, "ether")

    def validate_for_startup(self) -> None:
        """
        Refuse to start with a nonfunctional relayer identity.

        Raises:
            ConfigurationError: if the signing key or contract address is
                missing or malformed
        """
        if not self.relayer_private_key:
            raise ConfigurationError("RELAYER_PRIVATE_KEY not set in environment variables")

        try:
            Account.from_key(self.relayer_private_key)
        except Exception as e:
            raise ConfigurationError("RELAYER_PRIVATE_KEY is not a valid private key") from e

        if not self.payment_processor_address:
            raise ConfigurationError("PAYMENT_PROCESSOR_ADDRESS not set in environment variables")

        for name, value in (
            ("PAYMENT_PROCESSOR_ADDRESS", self.payment_processor_address),
            ("NZDD_TOKEN_ADDRESS", self.nzdd_token_address),
        ):
            if value and not Web3.is_address(value):
                raise ConfigurationError(f"{name} is not a valid address: {value}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
