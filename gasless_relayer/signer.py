"""
Transaction signing for relayed calls.

Signing is deterministic and performs no I/O: the nonce, gas limit, gas
price and chain id are all supplied by the caller.
"""

from dataclasses import dataclass
from typing import Any

from eth_account.signers.local import LocalAccount
from web3 import Web3
import structlog

from .capabilities import ContractCall

logger = structlog.get_logger()


@dataclass(frozen=True)
class SignedCall:
    """A signed legacy transaction ready for submission."""

    raw_transaction: bytes
    tx_hash: str
    nonce: int
    gas_limit: int
    gas_price: int


def build_transaction(
    call: ContractCall,
    nonce: int,
    gas_limit: int,
    gas_price: int,
    chain_id: int,
) -> dict[str, Any]:
    """Build the transaction dict for a contract call."""
    return {
        "chainId": chain_id,
        "nonce": nonce,
        "to": Web3.to_checksum_address(call.to),
        "value": call.value,
        "gas": gas_limit,
        "gasPrice": gas_price,
        "data": call.data,
    }


def sign_call(
    account: LocalAccount,
    call: ContractCall,
    nonce: int,
    gas_limit: int,
    gas_price: int,
    chain_id: int,
) -> SignedCall:
    """
    Sign a contract call with the relayer account.

    Returns:
        SignedCall carrying the raw bytes and the resulting tx hash
    """
    tx = build_transaction(call, nonce, gas_limit, gas_price, chain_id)
    signed = account.sign_transaction(tx)
    tx_hash = Web3.to_hex(signed.hash)

    logger.debug(
        "relay_call_signed",
        signer=account.address,
        to=tx["to"],
        nonce=nonce,
        gas_limit=gas_limit,
        gas_price=gas_price,
        tx_hash=tx_hash,
    )

    return SignedCall(
        raw_transaction=bytes(signed.raw_transaction),
        tx_hash=tx_hash,
        nonce=nonce,
        gas_limit=gas_limit,
        gas_price=gas_price,
    )
