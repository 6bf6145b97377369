"""
Pydantic models for API requests and responses.

Wire names are camelCase; fields accept either form.
"""

from typing import Optional, Union

from pydantic import BaseModel, Field


# ============================================================================
# Relay requests
# ============================================================================

class CreateWalletRequest(BaseModel):
    """Request to create a wallet and credit the welcome bonus."""

    # Presence and format are validated by the relay engine (400 on failure)
    user_wallet: Optional[str] = Field(None, alias="userWallet", description="User EVM address (0x...)")
    email: Optional[str] = Field(None, description="User email")
    ird_number: Optional[str] = Field(None, alias="irdNumber", description="IRD number")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "userWallet": "0x1234567890abcdef1234567890abcdef12345678",
                    "email": "user@example.com",
                    "irdNumber": "123-456-789",
                }
            ]
        },
    }


class TransferRequest(BaseModel):
    """Request to transfer NZDD between two wallets."""

    from_wallet: Optional[str] = Field(None, alias="fromWallet", description="Sender EVM address")
    to_wallet: Optional[str] = Field(None, alias="toWallet", description="Recipient EVM address")
    amount: Optional[Union[str, int, float]] = Field(
        None, description="Amount in token units (e.g. \"12.5\" or 12.5)"
    )
    description: Optional[str] = Field("", description="Free-text transfer description")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "fromWallet": "0x1234567890abcdef1234567890abcdef12345678",
                    "toWallet": "0xabcdef1234567890abcdef1234567890abcdef12",
                    "amount": "12.5",
                    "description": "Rent",
                }
            ]
        },
    }


# ============================================================================
# Relay responses
# ============================================================================

class RelayResponse(BaseModel):
    """Common fields of a successful relay."""

    success: bool = Field(..., description="Whether the relay succeeded")
    status: str = Field(..., description="submitted or confirmed")
    tx_hash: Optional[str] = Field(None, alias="txHash", description="Transaction hash")
    gas_used: Optional[str] = Field(None, alias="gasUsed", description="Gas used")
    fee_spent: Optional[str] = Field(None, alias="feeSpent", description="Fee paid by the relayer (ETH)")
    block_number: Optional[int] = Field(None, alias="blockNumber", description="Inclusion block")

    model_config = {"populate_by_name": True}


class CreateWalletResponse(RelayResponse):
    """Response from wallet creation."""

    wallet: str
    email: str
    ird: str
    amount: str = Field(..., description="NZDD credited")
    redirect_url: Optional[str] = Field(None, alias="redirectUrl")


class TransferResponse(RelayResponse):
    """Response from a token transfer."""

    from_wallet: str = Field(..., alias="fromWallet")
    to_wallet: str = Field(..., alias="toWallet")
    amount: str


class ErrorResponse(BaseModel):
    """Error body for rejected or failed relays."""

    error: str = Field(..., description="User-facing message")
    code: Optional[str] = Field(None, description="Stable reason code")
    details: Optional[str] = Field(None, description="Raw detail (debug mode only)")
    tx_hash: Optional[str] = Field(None, alias="txHash", description="Transaction hash, if submitted")

    model_config = {"populate_by_name": True}


# ============================================================================
# Status / info
# ============================================================================

class ContractAddresses(BaseModel):
    payment_processor: Optional[str] = Field(None, alias="paymentProcessor")
    nzdd_token: Optional[str] = Field(None, alias="nzddToken")

    model_config = {"populate_by_name": True}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    relayer_address: str = Field(..., alias="relayerAddress")
    balance: str = Field(..., description="Relayer balance (ETH)")
    network: str
    chain_id: int = Field(..., alias="chainId")
    contracts: ContractAddresses
    timestamp: str

    model_config = {"populate_by_name": True}


class RelayerStatusResponse(BaseModel):
    """Relayer balance and network status."""

    relayer_address: str = Field(..., alias="relayerAddress")
    balance: str = Field(..., description="Relayer balance (ETH)")
    gas_price: str = Field(..., alias="gasPrice", description="Current gas price (gwei)")
    min_balance: str = Field(..., alias="minBalance", description="Funds threshold (ETH)")
    is_low_balance: bool = Field(..., alias="isLowBalance")
    network: str
    chain_id: int = Field(..., alias="chainId")
    contract_addresses: ContractAddresses = Field(..., alias="contractAddresses")
    funding_url: str = Field(..., alias="fundingUrl")

    model_config = {"populate_by_name": True}


class UserInfoResponse(BaseModel):
    """PaymentProcessor user record."""

    wallet: str
    email: str
    ird_number: str = Field(..., alias="irdNumber")
    balance: str = Field(..., description="NZDD balance (token units)")
    received_bonus: bool = Field(..., alias="receivedBonus")

    model_config = {"populate_by_name": True}


class LivenessResponse(BaseModel):
    """Liveness response."""

    message: str
    timestamp: str
    relayer_address: str = Field(..., alias="relayerAddress")

    model_config = {"populate_by_name": True}
