"""
Tests for order and withdrawal payloads and their signatures.
"""

import pytest
from poseidon_py.poseidon_hash import poseidon_hash_many
from starknet_py.hash.utils import compute_hash_on_elements

from zkx_client.codec.hashes import hash_on_elements, starknet_keccak
from zkx_client.codec.numeric import FIXED_POINT_SCALE, to_u128_from_string
from zkx_client.crypto.identity import split_account_id
from zkx_client.signers import (
    Direction,
    HashType,
    OrderPayload,
    OrderType,
    Side,
    StarkSigner,
    TimeInForce,
    WithdrawalPayload,
    canonical_hash,
    data_hash,
    payload_hash,
    sign,
    sign_data,
    sign_order,
    sign_withdrawal,
    verify,
    verify_data,
    verify_order,
    verify_withdrawal,
)

ACCOUNT_ID = "0x" + "11" * 16 + "22" * 16


@pytest.fixture
def withdrawal():
    return WithdrawalPayload.create(ACCOUNT_ID, "USDC", 11)


@pytest.fixture
def order():
    return OrderPayload.create(
        account_id=ACCOUNT_ID,
        order_id=200,
        market_id="ETH-USDC",
        order_type=OrderType.LIMIT,
        direction=Direction.LONG,
        side=Side.BUY,
        price=1800.5,
        size=0.25,
        leverage=5,
        slippage=0.1,
        post_only=True,
    )


class TestWithdrawalPayload:
    """Withdrawal field layout."""

    def test_create_scales_amount(self, withdrawal):
        assert withdrawal.amount == 11 * FIXED_POINT_SCALE
        assert withdrawal.collateral_id == to_u128_from_string("USDC")

    def test_hash_elements_order(self, withdrawal):
        low, high = split_account_id(ACCOUNT_ID)
        assert withdrawal.hash_elements() == [
            low, high, to_u128_from_string("USDC"), 11 * FIXED_POINT_SCALE, 0,
        ]

    def test_limbs(self, withdrawal):
        low, high = withdrawal.hash_elements()[:2]
        assert low == int("22" * 16, 16)
        assert high == int("11" * 16, 16)

    def test_hash_uses_payload_hash_type(self):
        pedersen = WithdrawalPayload.create(ACCOUNT_ID, "USDC", 11, HashType.PEDERSEN)
        poseidon = WithdrawalPayload.create(ACCOUNT_ID, "USDC", 11, HashType.POSEIDON)
        assert poseidon.hash_elements()[-1] == 1
        assert payload_hash(poseidon) == hash_on_elements(poseidon.hash_elements(), HashType.POSEIDON)
        assert payload_hash(pedersen) != payload_hash(poseidon)

    def test_to_chain(self, withdrawal):
        chain = withdrawal.to_chain("0x1", "0x2")
        assert chain["account_id"] == int(ACCOUNT_ID, 16)
        assert chain["amount"] == 11 * FIXED_POINT_SCALE
        assert chain["sig_r"] == 1
        assert chain["sig_s"] == 2
        assert chain["hash_type"] == "Pedersen"


class TestOrderPayload:
    """Order field layout."""

    def test_hash_elements_order(self, order):
        low, high = split_account_id(ACCOUNT_ID)
        assert order.hash_elements() == [
            low,
            high,
            200,
            to_u128_from_string("ETH-USDC"),
            0,  # limit
            0,  # long
            0,  # buy
            1800500000000000000000,
            250000000000000000,
            5 * FIXED_POINT_SCALE,
            100000000000000000,
            1,  # post only
            0,  # gtc
        ]

    def test_enum_tags(self):
        assert int(OrderType.MARKET) == 1
        assert int(OrderType.DELEVERAGING) == 3
        assert int(Direction.SHORT) == 1
        assert int(Side.SELL) == 1
        assert int(TimeInForce.FOK) == 2

    def test_chain_names(self, order):
        chain = order.to_chain("0x1", "0x2")
        assert chain["order_type"] == "Limit"
        assert chain["direction"] == "Long"
        assert chain["side"] == "Buy"
        assert chain["time_in_force"] == "GTC"
        assert chain["post_only"] is True

    def test_negative_fields_hash(self):
        """Negative fixed-point values are mapped into the field, not rejected."""
        order = OrderPayload.create(
            account_id=100, order_id=200, market_id=300, order_type=OrderType.MARKET,
            direction=Direction.LONG, side=Side.BUY, price=1, size=1,
            leverage="-0.0000000000000001", slippage="-0.0000000000000002",
        )
        assert order.hash_elements()[9:11] == [-100, -200]
        assert payload_hash(order) == canonical_hash(order.hash_elements())

    def test_hex_ids(self):
        order = OrderPayload.create(
            account_id=ACCOUNT_ID, order_id="0x0a", market_id="12", order_type=OrderType.LIMIT,
            direction=Direction.SHORT, side=Side.SELL, price=1, size=1,
        )
        assert order.order_id == 10
        assert order.market_id == 12


class TestGoldenHashes:
    """Payload hashes pinned to literal field elements and runtime vectors."""

    # P - 100 and P - 200
    NEG_100 = 3618502788666131213697322783095070105623107215331596699973092056135872020381
    NEG_200 = 3618502788666131213697322783095070105623107215331596699973092056135872020281

    def _runtime_order(self, hash_type=HashType.PEDERSEN):
        return OrderPayload(
            account_id=100, order_id=200, market_id=300, order_type=OrderType.MARKET,
            direction=Direction.LONG, side=Side.BUY, price=10000000, size=1,
            leverage=-100, slippage=-200, post_only=True, time_in_force=TimeInForce.GTC,
            hash_type=hash_type,
        )

    def test_order_hash_runtime_vector(self):
        assert payload_hash(self._runtime_order()) == (
            779455944553865873074074863659363906459964867916460440519908583353736546068
        )

    def test_order_hash_literal_elements(self):
        assert payload_hash(self._runtime_order()) == compute_hash_on_elements(
            [100, 0, 200, 300, 1, 0, 0, 10000000, 1, self.NEG_100, self.NEG_200, 1, 0]
        )

    def test_order_poseidon_literal_elements(self):
        assert payload_hash(self._runtime_order(HashType.POSEIDON)) == poseidon_hash_many(
            [100, 0, 200, 300, 1, 0, 0, 10000000, 1, self.NEG_100, self.NEG_200, 1, 0]
        )

    def test_withdrawal_hash_literal_elements(self, withdrawal):
        # "USDC" packed is 0x55534443
        assert payload_hash(withdrawal) == compute_hash_on_elements([
            0x22222222222222222222222222222222,
            0x11111111111111111111111111111111,
            1431520323,
            11000000000000000000,
            0,
        ])

    def test_withdrawal_poseidon_literal_elements(self):
        request = WithdrawalPayload.create(ACCOUNT_ID, "USDC", 11, HashType.POSEIDON)
        assert payload_hash(request) == poseidon_hash_many([
            0x22222222222222222222222222222222,
            0x11111111111111111111111111111111,
            1431520323,
            11000000000000000000,
            1,
        ])


class TestSignAndVerify:
    """Canonical-hash signatures."""

    def test_withdrawal_round_trip(self, key_pair, withdrawal):
        signature = sign_withdrawal(withdrawal, key_pair)
        assert verify_withdrawal(key_pair.stark_key, withdrawal, signature)

    def test_tampered_amount_rejected(self, key_pair, withdrawal):
        """Changing the amount by one unit invalidates the signature."""
        signature = sign_withdrawal(withdrawal, key_pair)
        tampered = WithdrawalPayload(
            account_id=withdrawal.account_id,
            collateral_id=withdrawal.collateral_id,
            amount=withdrawal.amount + 1,
        )
        assert not verify(key_pair.stark_key, tampered, signature)

    def test_wrong_key_rejected(self, key_pair, other_key_pair, withdrawal):
        signature = sign_withdrawal(withdrawal, key_pair)
        assert not verify_withdrawal(other_key_pair.stark_key, withdrawal, signature)

    def test_order_round_trip(self, key_pair, order):
        signature = sign_order(order, key_pair)
        assert verify_order(key_pair.stark_key, order, signature)

    def test_signature_is_hex_pair(self, key_pair):
        r, s = sign(12345, key_pair)
        assert r.startswith("0x") and s.startswith("0x")

    def test_accepts_hex_private_key(self, key_pair, withdrawal):
        assert sign_withdrawal(withdrawal, key_pair.to_hex()) == sign_withdrawal(withdrawal, key_pair)

    def test_stark_signer(self, key_pair, order):
        signer = StarkSigner(key_pair)
        chain = signer.sign_payload(order)
        assert signer.stark_key == key_pair.stark_key
        assert verify(key_pair.stark_key, order, (chain["sig_r"], chain["sig_s"]))

    @pytest.mark.parametrize("signature", [
        ("0xzz", "0x1"),
        ("0x1", "not a number"),
        ("0x1", "0x2", "0x3"),
        ("0x1",),
        "0x1",
    ])
    def test_malformed_signature_rejected(self, key_pair, withdrawal, signature):
        """A signature that cannot be read is invalid, not an error."""
        assert verify(key_pair.stark_key, withdrawal, signature) is False

    def test_malformed_stark_key_rejected(self, key_pair, withdrawal):
        signature = sign_withdrawal(withdrawal, key_pair)
        assert verify("0xnothex", withdrawal, signature) is False


class TestDataHash:
    """Generic key/value data signing."""

    def test_values_sorted_and_joined(self):
        data = {"b": "xyz", "a": 10, "c": True}
        assert data_hash(data) == starknet_keccak(b"10|true|xyz")

    def test_empty_values_ignored(self):
        assert data_hash({"a": "1", "b": "", "c": None}) == data_hash({"a": "1"})

    def test_keys_do_not_matter(self):
        assert data_hash({"x": "1", "y": "2"}) == data_hash({"q": "2", "r": "1"})

    def test_integral_float(self):
        assert data_hash({"amount": 100.0}) == data_hash({"amount": 100})

    def test_round_trip(self, key_pair):
        data = {"account": ACCOUNT_ID, "nonce": 3}
        signature = sign_data(data, key_pair)
        assert verify_data(key_pair.stark_key, data, signature)
        assert not verify_data(key_pair.stark_key, {**data, "nonce": 4}, signature)

    def test_strategies_differ(self, withdrawal):
        """Canonical and data hashes are separate strategies."""
        assert payload_hash(withdrawal) != data_hash({"amount": withdrawal.amount})
