"""
Gasless Relayer API - HTTP gateway in front of the relay engine.

Provides REST endpoints for:
- Creating a wallet and crediting the welcome bonus (POST /create-wallet)
- Transferring NZDD between wallets (POST /transfer)
- Reading a user record (GET /user-info/{wallet})
- Relayer balance/network status (GET /relayer-status)
- Health and liveness checks (GET /health, GET /test)
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional, Union
from urllib.parse import urlencode

import structlog
import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from web3 import Web3

from . import __version__
from .capabilities import from_base_units
from .config import Settings, get_settings
from .errors import FailureReason
from .models import (
    ContractAddresses,
    CreateWalletRequest,
    CreateWalletResponse,
    ErrorResponse,
    HealthResponse,
    LivenessResponse,
    RelayerStatusResponse,
    TransferRequest,
    TransferResponse,
    UserInfoResponse,
)
from .outcome import RelayOutcome, RelayRequest
from .ratelimit import SlidingWindowRateLimiter
from .relayer import GaslessRelayer

# Configure logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()


# Global relayer (initialized at startup)
_relayer: Optional[GaslessRelayer] = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    global _relayer

    settings = get_settings()

    # Raises ConfigurationError on a missing key/contract: the app must not serve
    _relayer = GaslessRelayer(settings)
    await _relayer.start()

    logger.info(
        "API started",
        version=__version__,
        host=settings.host,
        port=settings.port,
        relayer_address=_relayer.address,
        evm_rpc=settings.rpc_url,
    )

    yield

    # Cleanup
    await _relayer.stop()
    _relayer = None

    logger.info("API stopped")


def get_relayer() -> GaslessRelayer:
    """Dependency: the running relayer."""
    if _relayer is None:
        raise HTTPException(status_code=503, detail="Relayer not initialized")
    return _relayer


# Create FastAPI app
app = FastAPI(
    title="Gasless Relayer API",
    description="Pays network fees on behalf of users",
    version=__version__,
    lifespan=lifespan,
)


# Add CORS middleware
_settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

create_wallet_limiter = SlidingWindowRateLimiter(
    limit=_settings.create_wallet_rate_limit,
    window_seconds=_settings.create_wallet_rate_window_seconds,
    message="Too many account creation attempts, please try again later.",
)
transaction_limiter = SlidingWindowRateLimiter(
    limit=_settings.transaction_rate_limit,
    window_seconds=_settings.transaction_rate_window_seconds,
    message="Too many transaction attempts, please try again later.",
)


# ============================================================================
# Outcome mapping
# ============================================================================

STATUS_CODES = {
    FailureReason.INVALID_REQUEST: 400,
    FailureReason.DUPLICATE_ACTION: 409,
    FailureReason.RELAY_FAILED: 500,
    FailureReason.TRANSACTION_REVERTED: 500,
    FailureReason.NODE_UNAVAILABLE: 502,
    FailureReason.INSUFFICIENT_FUNDS: 503,
    FailureReason.RELAYER_UNDERFUNDED: 503,
    FailureReason.CONFIRMATION_TIMEOUT: 504,
}

FAILURE_MESSAGES = {
    FailureReason.INSUFFICIENT_FUNDS: "Relayer has insufficient funds. Please contact support.",
    FailureReason.RELAYER_UNDERFUNDED: "Relayer has insufficient funds for gas",
    FailureReason.NODE_UNAVAILABLE: "Blockchain node unavailable, please try again later",
    FailureReason.TRANSACTION_REVERTED: "Transaction reverted",
    FailureReason.CONFIRMATION_TIMEOUT: (
        "Transaction was submitted but not confirmed in time. "
        "Check txHash before retrying."
    ),
}


def error_response(
    outcome: RelayOutcome,
    settings: Settings,
    generic_message: str,
    duplicate_message: str,
) -> JSONResponse:
    """Map a Rejected/Failed outcome to an HTTP error."""
    reason = outcome.reason or FailureReason.RELAY_FAILED

    if reason == FailureReason.INVALID_REQUEST:
        message = outcome.detail or "Invalid request"
    elif reason == FailureReason.DUPLICATE_ACTION:
        message = duplicate_message
    else:
        message = FAILURE_MESSAGES.get(reason, generic_message)

    body = ErrorResponse(
        error=message,
        code=reason.code,
        details=outcome.detail if settings.debug else None,
        tx_hash=outcome.tx_hash,
    )
    return JSONResponse(
        status_code=STATUS_CODES.get(reason, 500),
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


def _fee_eth(outcome: RelayOutcome) -> Optional[str]:
    if outcome.fee_spent is None:
        return None
    return f"{Web3.from_wei(outcome.fee_spent, 'ether'):f}"


def _gas_used(outcome: RelayOutcome) -> Optional[str]:
    return str(outcome.gas_used) if outcome.gas_used is not None else None


def build_redirect_url(base_url: str, ird: str, email: str, wallet: str, tx_hash: str) -> str:
    query = urlencode({"ird": ird, "email": email, "wallet": wallet, "txHash": tx_hash})
    return f"{base_url}?{query}"


# ============================================================================
# Health Check
# ============================================================================


@app.get("/health", response_model=HealthResponse)
async def health_check(
    relayer: GaslessRelayer = Depends(get_relayer),
    settings: Settings = Depends(get_settings),
) -> Union[HealthResponse, JSONResponse]:
    """
    Check relayer health.

    Reports the relayer balance and the network it is connected to.
    """
    try:
        status = await relayer.monitor.status()
        network = await relayer.evm.get_network()
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})

    return HealthResponse(
        status="healthy" if status.sufficient else "degraded",
        relayer_address=relayer.address,
        balance=str(status.balance_eth),
        network=network.name,
        chain_id=network.chain_id,
        contracts=ContractAddresses(
            payment_processor=settings.payment_processor_address,
            nzdd_token=settings.nzdd_token_address,
        ),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.get("/test", response_model=LivenessResponse)
async def liveness(relayer: GaslessRelayer = Depends(get_relayer)) -> LivenessResponse:
    """Liveness check without any chain access."""
    return LivenessResponse(
        message="NZDD Gasless Relayer is running!",
        timestamp=datetime.now(timezone.utc).isoformat(),
        relayer_address=relayer.address,
    )


# ============================================================================
# Relayed Transactions
# ============================================================================


@app.post(
    "/create-wallet",
    response_model=CreateWalletResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    dependencies=[Depends(create_wallet_limiter)],
)
async def create_wallet(
    request: CreateWalletRequest,
    relayer: GaslessRelayer = Depends(get_relayer),
    settings: Settings = Depends(get_settings),
) -> Union[CreateWalletResponse, JSONResponse]:
    """
    Create a wallet and credit the welcome bonus (gasless for the user).

    The relayer pays the gas for PaymentProcessor.createWalletAndCredit().
    """
    logger.info("Creating wallet", email=request.email, wallet=request.user_wallet)

    outcome = await relayer.relay(
        RelayRequest(capability="create_wallet", arguments=request.model_dump())
    )

    if not outcome.success:
        return error_response(
            outcome,
            settings,
            generic_message="Wallet creation failed",
            duplicate_message="This wallet has already received the welcome bonus",
        )

    redirect_url = None
    if settings.redirect_base_url and outcome.tx_hash:
        redirect_url = build_redirect_url(
            settings.redirect_base_url,
            ird=request.ird_number or "",
            email=request.email or "",
            wallet=request.user_wallet or "",
            tx_hash=outcome.tx_hash,
        )

    return CreateWalletResponse(
        success=True,
        status=outcome.status.value,
        tx_hash=outcome.tx_hash,
        gas_used=_gas_used(outcome),
        fee_spent=_fee_eth(outcome),
        block_number=outcome.block_number,
        wallet=request.user_wallet or "",
        email=request.email or "",
        ird=request.ird_number or "",
        amount=settings.welcome_bonus_amount,
        redirect_url=redirect_url,
    )


@app.post(
    "/transfer",
    response_model=TransferResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    dependencies=[Depends(transaction_limiter)],
)
async def transfer(
    request: TransferRequest,
    relayer: GaslessRelayer = Depends(get_relayer),
    settings: Settings = Depends(get_settings),
) -> Union[TransferResponse, JSONResponse]:
    """
    Transfer NZDD between two wallets (gasless for the user).

    The relayer pays the gas for PaymentProcessor.transferTokens().
    """
    logger.info(
        "Transferring tokens",
        from_wallet=request.from_wallet,
        to_wallet=request.to_wallet,
        amount=request.amount,
    )

    outcome = await relayer.relay(
        RelayRequest(capability="transfer", arguments=request.model_dump())
    )

    if not outcome.success:
        return error_response(
            outcome,
            settings,
            generic_message="Transfer failed",
            duplicate_message="This transfer has already been processed",
        )

    return TransferResponse(
        success=True,
        status=outcome.status.value,
        tx_hash=outcome.tx_hash,
        gas_used=_gas_used(outcome),
        fee_spent=_fee_eth(outcome),
        block_number=outcome.block_number,
        from_wallet=request.from_wallet or "",
        to_wallet=request.to_wallet or "",
        amount="" if request.amount is None else str(request.amount),
    )


# ============================================================================
# Reads
# ============================================================================


@app.get("/user-info/{wallet}", response_model=UserInfoResponse)
async def user_info(
    wallet: str,
    relayer: GaslessRelayer = Depends(get_relayer),
    settings: Settings = Depends(get_settings),
) -> Union[UserInfoResponse, JSONResponse]:
    """Read a user record from PaymentProcessor.getUserInfo()."""
    if not Web3.is_address(wallet):
        return JSONResponse(status_code=400, content={"error": "Invalid wallet address"})

    try:
        info = await relayer.evm.get_user_info(wallet)
    except Exception as e:
        logger.error("Failed to get user info", wallet=wallet, error=str(e))
        body = ErrorResponse(
            error="Failed to get user info",
            details=str(e) if settings.debug else None,
        )
        return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))

    return UserInfoResponse(
        wallet=wallet,
        email=info.email,
        ird_number=info.ird_number,
        balance=f"{from_base_units(info.balance, settings.token_decimals):f}",
        received_bonus=info.received_bonus,
    )


@app.get("/relayer-status", response_model=RelayerStatusResponse)
async def relayer_status(
    relayer: GaslessRelayer = Depends(get_relayer),
    settings: Settings = Depends(get_settings),
) -> Union[RelayerStatusResponse, JSONResponse]:
    """Relayer balance, gas price and network."""
    try:
        status = await relayer.monitor.status()
        gas_price = await relayer.evm.get_gas_price()
        network = await relayer.evm.get_network()
    except Exception as e:
        logger.error("Failed to get relayer status", error=str(e))
        return JSONResponse(status_code=500, content={"error": str(e)})

    return RelayerStatusResponse(
        relayer_address=relayer.address,
        balance=str(status.balance_eth),
        gas_price=str(Web3.from_wei(gas_price, "gwei")),
        min_balance=str(status.threshold_eth),
        is_low_balance=not status.sufficient,
        network=network.name,
        chain_id=network.chain_id,
        contract_addresses=ContractAddresses(
            payment_processor=settings.payment_processor_address,
            nzdd_token=settings.nzdd_token_address,
        ),
        funding_url=settings.funding_url,
    )


# ============================================================================
# Entry Point
# ============================================================================


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "gasless_relayer.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
