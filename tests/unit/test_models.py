"""Tests for domain dataclasses, events and API models."""

import pytest
from pydantic import ValidationError

from stableswap.math import Permill
from stableswap.models import (
    AssetAmount,
    LiquidityRemoved,
    PoolCreated,
    PoolInfo,
    PoolSnapshot,
    PoolState,
    SellExecuted,
    pool_state,
)
from stableswap.models.requests import (
    CreatePoolRequest,
    EventResponse,
    PoolResponse,
    QuoteResponse,
    SellRequest,
)
from stableswap.safe_int import UINT128_MAX


class TestPoolState:
    """Tests for pool_state."""

    def test_uninitialized(self):
        assert pool_state([0, 0], 0) is PoolState.UNINITIALIZED

    def test_active(self):
        assert pool_state([1, 1], 10) is PoolState.ACTIVE

    def test_seeding(self):
        """Partially funded reserves, or funds without shares, are in between."""
        assert pool_state([1, 0], 10) is PoolState.SEEDING
        assert pool_state([1, 1], 0) is PoolState.SEEDING


class TestPoolInfo:
    """Tests for PoolInfo."""

    def test_properties(self):
        info = PoolInfo(assets=(1, 2, 3), amplification=10, trade_fee=Permill.zero(), withdraw_fee=Permill.zero())
        assert info.asset_count == 3
        assert info.ann == 270
        assert info.find_asset(2) == 1
        assert info.find_asset(9) is None
        assert info.is_valid()

    def test_invalid(self):
        info = PoolInfo(assets=(1, 1), amplification=10, trade_fee=Permill.zero(), withdraw_fee=Permill.zero())
        assert not info.is_valid()


class TestEvents:
    """Tests for event serialization."""

    def test_kind_and_fees(self):
        event = PoolCreated(
            pool_id=7,
            assets=(1, 2),
            amplification=100,
            trade_fee=Permill(3_000),
            withdraw_fee=Permill.zero(),
        )
        data = event.as_dict()
        assert data["kind"] == "pool_created"
        assert data["trade_fee"] == "0.003"
        assert data["withdraw_fee"] == "0"
        assert data["assets"] == (1, 2)

    def test_nested_amounts(self):
        event = LiquidityRemoved(pool_id=7, who="alice", shares=10, amounts=(AssetAmount(1, 5),))
        data = event.as_dict()
        assert data["kind"] == "liquidity_removed"
        assert data["amounts"] == ({"asset_id": 1, "amount": 5},)
        assert data["fee"] == 0

    def test_event_response_stringifies_amounts(self):
        event = SellExecuted(who="bob", pool_id=7, asset_in=1, asset_out=2, amount_in=100, amount_out=121, fee=0)
        response = EventResponse.from_event(event)
        assert response.kind == "sell_executed"
        assert response.data["amount_out"] == "121"
        assert response.data["who"] == "bob"


class TestRequestModels:
    """Tests for pydantic request parsing."""

    def test_uint128_from_string(self):
        request = SellRequest.model_validate(
            {"who": "bob", "assetIn": 1, "assetOut": 2, "amountIn": "1000000000000000000000"}
        )
        assert request.amount_in == 10**21
        assert request.min_buy_amount == 0

    def test_uint128_overflow(self):
        with pytest.raises(ValidationError):
            SellRequest.model_validate({"who": "bob", "assetIn": 1, "assetOut": 2, "amountIn": str(UINT128_MAX + 1)})

    def test_uint128_negative(self):
        with pytest.raises(ValidationError):
            SellRequest.model_validate({"who": "bob", "assetIn": 1, "assetOut": 2, "amountIn": "-1"})

    def test_uint128_not_a_number(self):
        with pytest.raises(ValidationError):
            SellRequest.model_validate({"who": "bob", "assetIn": 1, "assetOut": 2, "amountIn": "12abc"})

    def test_fee_fraction(self):
        request = CreatePoolRequest.model_validate({"assets": [1, 2], "amplification": 100, "tradeFee": "0.003"})
        assert request.trade_fee == "0.003"
        assert request.withdraw_fee == "0"

    @pytest.mark.parametrize("fee", ["1", "1.5", "-0.1", "0.0000001", "abc"])
    def test_fee_fraction_rejected(self, fee):
        with pytest.raises(ValidationError):
            CreatePoolRequest.model_validate({"assets": [1, 2], "amplification": 100, "tradeFee": fee})

    def test_quote_response_serializes_strings(self):
        response = QuoteResponse(amount_in=100, amount_out=121, fee=0)
        assert response.model_dump(by_alias=True) == {"amountIn": "100", "amountOut": "121", "fee": "0"}

    def test_pool_response_invariant_wider_than_balance(self):
        """The invariant may outgrow 128 bits and is still rendered as a string."""
        snapshot = PoolSnapshot(
            pool_id=7,
            info=PoolInfo(assets=(1, 2), amplification=1, trade_fee=Permill.zero(), withdraw_fee=Permill.zero()),
            reserves=(UINT128_MAX, UINT128_MAX),
            share_issuance=UINT128_MAX,
            invariant=2 * UINT128_MAX + 2,
            state=PoolState.ACTIVE,
        )
        data = PoolResponse.from_snapshot(snapshot).model_dump(by_alias=True)
        assert data["invariant"] == str(2 * UINT128_MAX + 2)
        assert data["reserves"] == [str(UINT128_MAX), str(UINT128_MAX)]

    def test_pool_response_without_invariant(self):
        snapshot = PoolSnapshot(
            pool_id=7,
            info=PoolInfo(assets=(1, 2), amplification=1, trade_fee=Permill.zero(), withdraw_fee=Permill.zero()),
            reserves=(0, 1000),
            share_issuance=0,
            invariant=None,
            state=PoolState.SEEDING,
        )
        data = PoolResponse.from_snapshot(snapshot).model_dump(by_alias=True)
        assert data["invariant"] is None
        assert data["state"] == "seeding"
