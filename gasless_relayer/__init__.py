"""
NZDD Gasless Relayer

Submits PaymentProcessor calls on behalf of users and pays the network fee
from a single funded relayer account. Outcomes are reported to an optional
webhook; the relayer balance is watched in the background.

Usage:
    # Show relayer balance and network
    gasless-relayer status

    # Run the HTTP gateway
    gasless-relayer serve --port 3001
"""

__version__ = "0.1.0"

from .config import Settings, get_settings
from .errors import ConfigurationError, FailureReason, InvalidRequestError, SubmissionError
from .outcome import NotificationEvent, RelayOutcome, RelayRequest, RelayStatus
from .capabilities import CapabilityRegistry, ContractCall, build_default_registry
from .balance import BalanceMonitor, BalanceStatus
from .notifier import NotificationDispatcher
from .evm import EvmClient
from .engine import RelayEngine
from .relayer import GaslessRelayer

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "ConfigurationError",
    "FailureReason",
    "InvalidRequestError",
    "SubmissionError",
    "NotificationEvent",
    "RelayOutcome",
    "RelayRequest",
    "RelayStatus",
    "CapabilityRegistry",
    "ContractCall",
    "build_default_registry",
    "BalanceMonitor",
    "BalanceStatus",
    "NotificationDispatcher",
    "EvmClient",
    "RelayEngine",
    "GaslessRelayer",
]
