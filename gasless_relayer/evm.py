"""
EVM chain client for the relayer.

Thin async wrapper around AsyncWeb3. Reads return raw values; calls that
can fail on the node side raise SubmissionError.
"""

from dataclasses import dataclass
from typing import Optional

from web3 import AsyncWeb3, AsyncHTTPProvider, Web3
from web3.exceptions import TimeExhausted
import structlog

from .capabilities import ContractCall
from .errors import as_submission_error

logger = structlog.get_logger()


# PaymentProcessor ABI (read functions only; writes are encoded by capabilities)
PAYMENT_PROCESSOR_ABI = [
    {
        "inputs": [{"name": "wallet", "type": "address"}],
        "name": "getUserInfo",
        "outputs": [
            {"name": "", "type": "string"},
            {"name": "", "type": "string"},
            {"name": "", "type": "uint256"},
            {"name": "", "type": "bool"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "owner",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
]

NETWORK_NAMES = {
    1: "mainnet",
    5: "goerli",
    17000: "holesky",
    11155111: "sepolia",
    31337: "hardhat",
    1337: "localhost",
}


@dataclass(frozen=True)
class NetworkIdentity:
    """Network name and chain id."""

    name: str
    chain_id: int


@dataclass(frozen=True)
class Confirmation:
    """Result of waiting for a transaction receipt."""

    included: bool
    succeeded: bool = False
    fee_spent: int = 0  # wei
    gas_used: Optional[int] = None
    block_number: Optional[int] = None


@dataclass(frozen=True)
class UserInfo:
    """PaymentProcessor.getUserInfo result."""

    wallet: str
    email: str
    ird_number: str
    balance: int  # token base units
    received_bonus: bool


class EvmClient:
    """
    Async EVM client for relayer interactions.
    """

    def __init__(
        self,
        rpc_url: str,
        payment_processor_address: Optional[str] = None,
        poll_latency: float = 2.0,
        w3: Optional[AsyncWeb3] = None,
    ):
        self.rpc_url = rpc_url
        self.w3 = w3 or AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.poll_latency = poll_latency
        self.payment_processor_address = payment_processor_address
        self._chain_id: Optional[int] = None

        logger.info(
            "evm_client_initialized",
            rpc_url=rpc_url,
            payment_processor=payment_processor_address,
        )

    async def check_connectivity(self) -> bool:
        """Check if EVM RPC is reachable."""
        try:
            await self.w3.eth.block_number
            return True
        except Exception:
            return False

    async def get_balance(self, address: str) -> int:
        """Get native balance in wei."""
        return await self.w3.eth.get_balance(Web3.to_checksum_address(address))

    async def get_gas_price(self) -> int:
        """Get current gas price in wei."""
        return await self.w3.eth.gas_price

    async def get_chain_id(self) -> int:
        """Get chain id (fetched once; it cannot change for a connection)."""
        if self._chain_id is None:
            self._chain_id = await self.w3.eth.chain_id
        return self._chain_id

    async def get_network(self) -> NetworkIdentity:
        """Get network name and chain id."""
        chain_id = await self.get_chain_id()
        return NetworkIdentity(name=NETWORK_NAMES.get(chain_id, "unknown"), chain_id=chain_id)

    async def get_nonce(self, address: str) -> int:
        """Get next nonce for account, including pending transactions."""
        return await self.w3.eth.get_transaction_count(
            Web3.to_checksum_address(address), "pending"
        )

    async def simulate(self, call: ContractCall, sender: str) -> None:
        """
        Dry-run a call with eth_call.

        Raises:
            SubmissionError: if the call would revert or the node fails
        """
        try:
            await self.w3.eth.call(
                {
                    "from": Web3.to_checksum_address(sender),
                    "to": Web3.to_checksum_address(call.to),
                    "value": call.value,
                    "data": call.data,
                }
            )
        except Exception as e:
            raise as_submission_error(e) from e

    async def send_raw_transaction(self, raw_transaction: bytes) -> str:
        """
        Submit a signed transaction.

        Returns:
            Transaction hash (0x-prefixed hex)

        Raises:
            SubmissionError: if the node rejects the transaction
        """
        try:
            tx_hash = await self.w3.eth.send_raw_transaction(raw_transaction)
        except Exception as e:
            raise as_submission_error(e) from e
        return Web3.to_hex(tx_hash)

    async def wait_for_confirmation(self, tx_hash: str, timeout: float) -> Confirmation:
        """
        Wait for a receipt.

        Returns ``Confirmation(included=False)`` when the timeout expires;
        the transaction may still be mined afterwards.
        """
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=timeout,
                poll_latency=self.poll_latency,
            )
        except TimeExhausted:
            logger.warning("confirmation_timeout", tx_hash=tx_hash, timeout=timeout)
            return Confirmation(included=False)

        gas_used = receipt["gasUsed"]
        effective_gas_price = receipt.get("effectiveGasPrice", 0)
        return Confirmation(
            included=True,
            succeeded=receipt["status"] == 1,
            fee_spent=gas_used * effective_gas_price,
            gas_used=gas_used,
            block_number=receipt.get("blockNumber"),
        )

    def get_payment_processor(self):
        """Get PaymentProcessor contract instance."""
        if not self.payment_processor_address:
            raise ValueError("PAYMENT_PROCESSOR_ADDRESS not configured")
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(self.payment_processor_address),
            abi=PAYMENT_PROCESSOR_ABI,
        )

    async def get_user_info(self, wallet: str) -> UserInfo:
        """Call PaymentProcessor.getUserInfo()."""
        contract = self.get_payment_processor()
        wallet = Web3.to_checksum_address(wallet)
        email, ird_number, balance, received_bonus = await contract.functions.getUserInfo(
            wallet
        ).call()
        return UserInfo(
            wallet=wallet,
            email=email,
            ird_number=ird_number,
            balance=balance,
            received_bonus=received_bonus,
        )

    async def close(self) -> None:
        """Close the provider session."""
        await self.w3.provider.disconnect()
