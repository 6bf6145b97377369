"""
Tests for relayed call signing.
"""

from eth_account import Account
from web3 import Web3

from gasless_relayer.capabilities import ContractCall
from gasless_relayer.signer import build_transaction, sign_call

TEST_KEY = "0x" + "11" * 32
CALL = ContractCall(to="0x" + "22" * 20, data=bytes.fromhex("deadbeef"))


class TestBuildTransaction:
    """Tests for build_transaction."""

    def test_fields(self):
        tx = build_transaction(CALL, nonce=5, gas_limit=500_000, gas_price=10**9, chain_id=11155111)

        assert tx["nonce"] == 5
        assert tx["gas"] == 500_000
        assert tx["gasPrice"] == 10**9
        assert tx["chainId"] == 11155111
        assert tx["to"] == Web3.to_checksum_address(CALL.to)
        assert tx["data"] == CALL.data
        assert tx["value"] == 0


class TestSignCall:
    """Tests for sign_call."""

    def test_signature_is_deterministic(self):
        account = Account.from_key(TEST_KEY)

        first = sign_call(account, CALL, nonce=1, gas_limit=500_000, gas_price=10**9, chain_id=1)
        second = sign_call(account, CALL, nonce=1, gas_limit=500_000, gas_price=10**9, chain_id=1)

        assert first.raw_transaction == second.raw_transaction
        assert first.tx_hash == second.tx_hash

    def test_hash_matches_raw_bytes(self):
        account = Account.from_key(TEST_KEY)

        signed = sign_call(account, CALL, nonce=0, gas_limit=21_000, gas_price=1, chain_id=1)

        assert signed.tx_hash == Web3.to_hex(Web3.keccak(signed.raw_transaction))
        assert signed.tx_hash.startswith("0x")

    def test_recovers_relayer_address(self):
        account = Account.from_key(TEST_KEY)

        signed = sign_call(account, CALL, nonce=0, gas_limit=21_000, gas_price=1, chain_id=1)

        assert Account.recover_transaction(signed.raw_transaction) == account.address

    def test_nonce_changes_hash(self):
        account = Account.from_key(TEST_KEY)

        a = sign_call(account, CALL, nonce=0, gas_limit=21_000, gas_price=1, chain_id=1)
        b = sign_call(account, CALL, nonce=1, gas_limit=21_000, gas_price=1, chain_id=1)

        assert a.tx_hash != b.tx_hash
        assert (a.nonce, b.nonce) == (0, 1)
