"""
Tests for capability encoding and argument validation.
"""

from decimal import Decimal

import pytest
from eth_abi import decode

from gasless_relayer.capabilities import (
    CapabilityRegistry,
    CreateWalletCapability,
    TransferCapability,
    build_default_registry,
    from_base_units,
    function_selector,
    to_base_units,
)
from gasless_relayer.errors import InvalidRequestError

PAYMENT_PROCESSOR = "0x" + "22" * 20
ALICE = "0x" + "33" * 20
BOB = "0x" + "44" * 20


class TestFunctionSelector:
    """Tests for function_selector."""

    def test_erc20_transfer_selector(self):
        """Known selector for transfer(address,uint256)."""
        assert bytes(function_selector("transfer(address,uint256)")).hex() == "a9059cbb"


class TestBaseUnits:
    """Tests for token amount conversion."""

    def test_whole_and_fractional(self):
        assert to_base_units("50", 18) == 50 * 10**18
        assert to_base_units("12.5", 18) == 12_500_000_000_000_000_000
        assert to_base_units(3, 2) == 300
        assert to_base_units(12.5, 18) == 12_500_000_000_000_000_000

    @pytest.mark.parametrize("value", ["abc", "0", "-1", "NaN"])
    def test_rejects_non_positive_or_invalid(self, value):
        with pytest.raises(InvalidRequestError):
            to_base_units(value, 18)

    def test_rejects_excess_precision(self):
        with pytest.raises(InvalidRequestError, match="decimal places"):
            to_base_units("0.001", 2)

    def test_from_base_units(self):
        assert from_base_units(50 * 10**18, 18) == Decimal("50")
        assert f"{from_base_units(1_500_000_000_000_000_000, 18):f}" == "1.5"


class TestCreateWalletCapability:
    """Tests for createWalletAndCredit encoding."""

    def test_build_encodes_call(self):
        capability = CreateWalletCapability(PAYMENT_PROCESSOR)

        call = capability.build(
            {"user_wallet": ALICE, "email": "a@example.com", "ird_number": "123"}
        )

        assert call.to.lower() == PAYMENT_PROCESSOR
        assert call.value == 0
        assert call.data[:4] == function_selector("createWalletAndCredit(address,string,string)")
        wallet, email, ird = decode(["address", "string", "string"], call.data[4:])
        assert wallet.lower() == ALICE
        assert email == "a@example.com"
        assert ird == "123"

    def test_missing_fields(self):
        capability = CreateWalletCapability(PAYMENT_PROCESSOR)
        with pytest.raises(InvalidRequestError, match="Missing required fields: email, ird_number"):
            capability.build({"user_wallet": ALICE})

    def test_invalid_wallet(self):
        capability = CreateWalletCapability(PAYMENT_PROCESSOR)
        with pytest.raises(InvalidRequestError, match="Invalid wallet address"):
            capability.build({"user_wallet": "0x123", "email": "a@b.c", "ird_number": "1"})

    def test_subject_reports_bonus(self):
        capability = CreateWalletCapability(PAYMENT_PROCESSOR, bonus_amount="50")
        subject = capability.subject(
            {"user_wallet": ALICE, "email": "a@example.com", "ird_number": "123"}
        )
        assert subject == {"wallet": ALICE, "email": "a@example.com", "ird": "123", "amount": "50"}


class TestTransferCapability:
    """Tests for transferTokens encoding."""

    def test_build_scales_amount(self):
        capability = TransferCapability(PAYMENT_PROCESSOR, decimals=18)

        call = capability.build(
            {"from_wallet": ALICE, "to_wallet": BOB, "amount": "12.5", "description": "Rent"}
        )

        sender, recipient, amount, description = decode(
            ["address", "address", "uint256", "string"], call.data[4:]
        )
        assert sender.lower() == ALICE
        assert recipient.lower() == BOB
        assert amount == 12_500_000_000_000_000_000
        assert description == "Rent"

    def test_same_sender_and_recipient(self):
        capability = TransferCapability(PAYMENT_PROCESSOR)
        with pytest.raises(InvalidRequestError, match="must differ"):
            capability.build({"from_wallet": ALICE, "to_wallet": ALICE, "amount": "1"})

    def test_description_optional(self):
        capability = TransferCapability(PAYMENT_PROCESSOR)
        call = capability.build({"from_wallet": ALICE, "to_wallet": BOB, "amount": "1"})
        *_, description = decode(["address", "address", "uint256", "string"], call.data[4:])
        assert description == ""


class TestRegistry:
    """Tests for CapabilityRegistry."""

    def test_default_registry(self):
        registry = build_default_registry(PAYMENT_PROCESSOR)
        assert registry.names() == ["create_wallet", "transfer"]

    def test_unknown_capability(self):
        with pytest.raises(InvalidRequestError, match="Unknown capability: mint"):
            CapabilityRegistry().get("mint")
