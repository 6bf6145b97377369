"""
Relayable capabilities.

A capability turns a named RelayRequest into a ContractCall against the
PaymentProcessor contract. Argument validation happens here, before the
engine touches the chain.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from eth_abi import encode
from web3 import Web3

from .errors import InvalidRequestError


@dataclass(frozen=True)
class ContractCall:
    """An encoded call: target address, calldata and value in wei."""

    to: str
    data: bytes
    value: int = 0


def function_selector(signature: str) -> bytes:
    """First 4 bytes of keccak256 of the canonical function signature."""
    return Web3.keccak(text=signature)[:4]


def encode_call(signature: str, arg_types: list[str], args: list[Any]) -> bytes:
    """ABI-encode a function call (selector + arguments)."""
    return function_selector(signature) + encode(arg_types, args)


def to_base_units(value: Union[int, float, str, Decimal], decimals: int) -> int:
    """
    Convert a token amount to integer base units with exact precision.

    Examples:
        >>> to_base_units("1.5", 18)
        1500000000000000000
        >>> to_base_units("0.1", 2)
        10
    """
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidRequestError(f"Invalid amount: {value}") from e

    if not amount.is_finite() or amount <= 0:
        raise InvalidRequestError(f"Amount must be positive: {value}")

    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidRequestError(f"Amount has more than {decimals} decimal places: {value}")
    return int(scaled)


def from_base_units(value: int, decimals: int) -> Decimal:
    """Convert integer base units back to a token amount."""
    return Decimal(value).scaleb(-decimals).normalize()


def _require_fields(arguments: dict[str, Any], *names: str) -> None:
    missing = [name for name in names if not arguments.get(name)]
    if missing:
        raise InvalidRequestError(f"Missing required fields: {', '.join(missing)}")


def _require_address(value: Any, label: str = "wallet") -> str:
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidRequestError(f"Invalid {label} address")
    return Web3.to_checksum_address(value)


class Capability:
    """Base class for a named relayable operation."""

    name: str = ""
    success_event: str = ""
    signature: str = ""
    arg_types: list[str] = []

    def __init__(self, contract_address: str):
        self.contract_address = Web3.to_checksum_address(contract_address)

    def encode_args(self, arguments: dict[str, Any]) -> list[Any]:
        """Validate arguments and return them in ABI order."""
        raise NotImplementedError

    def subject(self, arguments: dict[str, Any]) -> dict[str, Any]:
        """Identifiers reported in notifications."""
        return {}

    def build(self, arguments: dict[str, Any]) -> ContractCall:
        """Validate arguments and encode the contract call."""
        args = self.encode_args(arguments)
        return ContractCall(
            to=self.contract_address,
            data=encode_call(self.signature, self.arg_types, args),
        )


class CreateWalletCapability(Capability):
    """PaymentProcessor.createWalletAndCredit(userWallet, email, irdNumber)."""

    name = "create_wallet"
    success_event = "wallet_created"
    signature = "createWalletAndCredit(address,string,string)"
    arg_types = ["address", "string", "string"]

    def __init__(self, contract_address: str, bonus_amount: str = "50"):
        super().__init__(contract_address)
        self.bonus_amount = bonus_amount

    def encode_args(self, arguments: dict[str, Any]) -> list[Any]:
        _require_fields(arguments, "user_wallet", "email", "ird_number")
        wallet = _require_address(arguments["user_wallet"])
        return [wallet, str(arguments["email"]), str(arguments["ird_number"])]

    def subject(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return {
            "wallet": arguments.get("user_wallet"),
            "email": arguments.get("email"),
            "ird": arguments.get("ird_number"),
            "amount": self.bonus_amount,
        }


class TransferCapability(Capability):
    """PaymentProcessor.transferTokens(from, to, amount, description)."""

    name = "transfer"
    success_event = "tokens_transferred"
    signature = "transferTokens(address,address,uint256,string)"
    arg_types = ["address", "address", "uint256", "string"]

    def __init__(self, contract_address: str, decimals: int = 18):
        super().__init__(contract_address)
        self.decimals = decimals

    def encode_args(self, arguments: dict[str, Any]) -> list[Any]:
        _require_fields(arguments, "from_wallet", "to_wallet", "amount")
        sender = _require_address(arguments["from_wallet"], "sender")
        recipient = _require_address(arguments["to_wallet"], "recipient")
        if sender == recipient:
            raise InvalidRequestError("Sender and recipient must differ")
        amount = to_base_units(arguments["amount"], self.decimals)
        return [sender, recipient, amount, str(arguments.get("description") or "")]

    def subject(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return {
            "from": arguments.get("from_wallet"),
            "to": arguments.get("to_wallet"),
            "amount": str(arguments.get("amount")),
            "description": arguments.get("description") or "",
        }


class CapabilityRegistry:
    """Name -> Capability lookup."""

    def __init__(self, capabilities: Optional[list[Capability]] = None):
        self._capabilities: dict[str, Capability] = {}
        for capability in capabilities or []:
            self.register(capability)

    def register(self, capability: Capability) -> None:
        if not capability.name:
            raise ValueError("Capability must have a name")
        self._capabilities[capability.name] = capability

    def get(self, name: str) -> Capability:
        try:
            return self._capabilities[name]
        except KeyError:
            raise InvalidRequestError(f"Unknown capability: {name}") from None

    def names(self) -> list[str]:
        return sorted(self._capabilities)


def build_default_registry(
    payment_processor_address: str,
    bonus_amount: str = "50",
    token_decimals: int = 18,
) -> CapabilityRegistry:
    """Registry with the PaymentProcessor capabilities."""
    return CapabilityRegistry(
        [
            CreateWalletCapability(payment_processor_address, bonus_amount=bonus_amount),
            TransferCapability(payment_processor_address, decimals=token_decimals),
        ]
    )
