"""Pydantic models for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from stableswap.models.events import Event
from stableswap.models.pool import PoolSnapshot
from stableswap.models.types import AssetIdField, BigUint, FeeFraction, Uint128


class RegisterAssetRequest(BaseModel):
    """Register an asset id with the in-memory registry."""

    asset_id: AssetIdField = Field(alias="assetId")
    name: str = Field(default="", max_length=64)

    model_config = {"populate_by_name": True}


class EndowRequest(BaseModel):
    """Credit an account with an asset (in-memory ledger only)."""

    asset_id: AssetIdField = Field(alias="assetId")
    amount: Uint128

    model_config = {"populate_by_name": True}


class CreatePoolRequest(BaseModel):
    """Create a pool over the given assets."""

    assets: list[AssetIdField] = Field(min_length=1, max_length=16)
    amplification: int = Field(ge=0, le=2**16 - 1)
    trade_fee: FeeFraction = Field(default="0", alias="tradeFee")
    withdraw_fee: FeeFraction = Field(default="0", alias="withdrawFee")

    model_config = {"populate_by_name": True}


class AssetAmountModel(BaseModel):
    """An amount of one asset."""

    asset_id: AssetIdField = Field(alias="assetId")
    amount: Uint128

    model_config = {"populate_by_name": True}


class AddLiquidityRequest(BaseModel):
    """Deposit one or more pool assets."""

    who: str = Field(min_length=1)
    assets: list[AssetAmountModel] = Field(min_length=1)


class RemoveLiquidityRequest(BaseModel):
    """Burn shares for a proportional withdrawal."""

    who: str = Field(min_length=1)
    shares: Uint128


class RemoveLiquidityOneAssetRequest(BaseModel):
    """Burn shares for a single-asset withdrawal."""

    who: str = Field(min_length=1)
    asset_id: AssetIdField = Field(alias="assetId")
    shares: Uint128

    model_config = {"populate_by_name": True}


class SellRequest(BaseModel):
    """Sell an exact amount of asset_in."""

    who: str = Field(min_length=1)
    asset_in: AssetIdField = Field(alias="assetIn")
    asset_out: AssetIdField = Field(alias="assetOut")
    amount_in: Uint128 = Field(alias="amountIn")
    min_buy_amount: Uint128 = Field(default=0, alias="minBuyAmount")

    model_config = {"populate_by_name": True}


class BuyRequest(BaseModel):
    """Buy an exact amount of asset_out."""

    who: str = Field(min_length=1)
    asset_in: AssetIdField = Field(alias="assetIn")
    asset_out: AssetIdField = Field(alias="assetOut")
    amount_out: Uint128 = Field(alias="amountOut")
    max_sell_amount: Uint128 = Field(alias="maxSellAmount")

    model_config = {"populate_by_name": True}


class QuoteResponse(BaseModel):
    """Quote for a trade, without side effects."""

    amount_in: Uint128 = Field(serialization_alias="amountIn")
    amount_out: Uint128 = Field(serialization_alias="amountOut")
    fee: Uint128


class BalanceResponse(BaseModel):
    """Free balance of an account."""

    account: str
    asset_id: int = Field(serialization_alias="assetId")
    balance: Uint128


class PoolResponse(BaseModel):
    """Pool configuration and current state."""

    pool_id: int = Field(serialization_alias="poolId")
    assets: list[int]
    amplification: int
    trade_fee: str = Field(serialization_alias="tradeFee")
    withdraw_fee: str = Field(serialization_alias="withdrawFee")
    reserves: list[Uint128]
    share_issuance: Uint128 = Field(serialization_alias="shareIssuance")
    invariant: BigUint | None
    state: str

    @classmethod
    def from_snapshot(cls, snapshot: PoolSnapshot) -> PoolResponse:
        return cls(
            pool_id=snapshot.pool_id,
            assets=list(snapshot.info.assets),
            amplification=snapshot.info.amplification,
            trade_fee=str(snapshot.info.trade_fee),
            withdraw_fee=str(snapshot.info.withdraw_fee),
            reserves=list(snapshot.reserves),
            share_issuance=snapshot.share_issuance,
            invariant=snapshot.invariant,
            state=snapshot.state.value,
        )


class EventResponse(BaseModel):
    """Event emitted by a successful operation."""

    kind: str
    data: dict[str, object]

    @classmethod
    def from_event(cls, event: Event) -> EventResponse:
        data = event.as_dict()
        kind = str(data.pop("kind"))
        return cls(kind=kind, data=_stringify_amounts(data))


def _stringify_amounts(value: object) -> object:
    """Render ints as decimal strings so 128-bit amounts survive JSON clients."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, dict):
        return {k: _stringify_amounts(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_stringify_amounts(v) for v in value]
    return value
