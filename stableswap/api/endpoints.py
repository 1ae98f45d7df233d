"""API endpoints for the stableswap engine.

Handlers are ``async def`` with no awaits, so each operation runs to
completion on the event loop before the next one starts.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from stableswap.engine import PoolEngine, get_default_engine
from stableswap.errors import (
    ArithmeticFailure,
    PoolAlreadyExists,
    PoolNotFound,
    StableswapError,
)
from stableswap.ledger import InMemoryAssetRegistry, InMemoryLedger
from stableswap.math.fees import Permill
from stableswap.models.pool import AssetAmount
from stableswap.models.requests import (
    AddLiquidityRequest,
    BalanceResponse,
    BuyRequest,
    CreatePoolRequest,
    EndowRequest,
    EventResponse,
    PoolResponse,
    QuoteResponse,
    RegisterAssetRequest,
    RemoveLiquidityOneAssetRequest,
    RemoveLiquidityRequest,
    SellRequest,
)
from stableswap.safe_int import UINT128_MAX

logger = structlog.get_logger()

router = APIRouter()


def get_engine() -> PoolEngine:
    """Dependency provider for the engine instance.

    Override this in tests to inject a fresh engine:
        app.dependency_overrides[get_engine] = lambda: engine

    Returns:
        The engine used to serve requests.
    """
    return get_default_engine()


def error_status(err: StableswapError) -> int:
    """HTTP status code for an engine error."""
    if isinstance(err, PoolNotFound):
        return 404
    if isinstance(err, PoolAlreadyExists):
        return 409
    if isinstance(err, ArithmeticFailure):
        return 422
    return 400


def _in_memory_ledger(engine: PoolEngine) -> InMemoryLedger:
    if not isinstance(engine.ledger, InMemoryLedger):
        raise HTTPException(status_code=501, detail="Ledger does not support endowments")
    return engine.ledger


def _in_memory_registry(engine: PoolEngine) -> InMemoryAssetRegistry:
    if not isinstance(engine.asset_registry, InMemoryAssetRegistry):
        raise HTTPException(status_code=501, detail="Asset registry does not support registration")
    return engine.asset_registry


# =============================================================================
# Assets and accounts
# =============================================================================


@router.post("/assets", status_code=201)
async def register_asset(
    request: RegisterAssetRequest,
    engine: PoolEngine = Depends(get_engine),
) -> dict[str, object]:
    """Register an asset so pools may be created over it."""
    registry = _in_memory_registry(engine)
    registry.register(request.asset_id, request.name)
    logger.info("asset_registered", asset=request.asset_id, name=request.name)
    return {"assetId": request.asset_id, "name": registry.name_of(request.asset_id)}


@router.post("/accounts/{account}/endow")
async def endow(
    account: str,
    request: EndowRequest,
    engine: PoolEngine = Depends(get_engine),
) -> BalanceResponse:
    """Credit an account with newly created units of an asset."""
    ledger = _in_memory_ledger(engine)
    ledger.deposit(request.asset_id, account, request.amount)
    logger.info("account_endowed", account=account, asset=request.asset_id, amount=request.amount)
    return BalanceResponse(
        account=account,
        asset_id=request.asset_id,
        balance=ledger.free_balance(request.asset_id, account),
    )


@router.get("/accounts/{account}/balances/{asset_id}")
async def get_balance(
    account: str,
    asset_id: int,
    engine: PoolEngine = Depends(get_engine),
) -> BalanceResponse:
    return BalanceResponse(
        account=account,
        asset_id=asset_id,
        balance=engine.ledger.free_balance(asset_id, account),
    )


# =============================================================================
# Pools
# =============================================================================


@router.post("/pools", status_code=201)
async def create_pool(
    request: CreatePoolRequest,
    engine: PoolEngine = Depends(get_engine),
) -> EventResponse:
    """Create a pool. The returned event carries the new pool id."""
    event = engine.create_pool(
        request.assets,
        request.amplification,
        Permill.from_decimal(request.trade_fee),
        Permill.from_decimal(request.withdraw_fee),
    )
    return EventResponse.from_event(event)


@router.get("/pools")
async def list_pools(engine: PoolEngine = Depends(get_engine)) -> list[PoolResponse]:
    return [PoolResponse.from_snapshot(engine.get_pool_snapshot(pool_id)) for pool_id in engine.pools()]


@router.get("/pools/{pool_id}")
async def get_pool(pool_id: int, engine: PoolEngine = Depends(get_engine)) -> PoolResponse:
    return PoolResponse.from_snapshot(engine.get_pool_snapshot(pool_id))


@router.post("/pools/{pool_id}/liquidity")
async def add_liquidity(
    pool_id: int,
    request: AddLiquidityRequest,
    engine: PoolEngine = Depends(get_engine),
) -> EventResponse:
    deposits = [AssetAmount(entry.asset_id, entry.amount) for entry in request.assets]
    event = engine.add_liquidity(request.who, pool_id, deposits)
    return EventResponse.from_event(event)


@router.post("/pools/{pool_id}/liquidity/remove")
async def remove_liquidity(
    pool_id: int,
    request: RemoveLiquidityRequest,
    engine: PoolEngine = Depends(get_engine),
) -> EventResponse:
    event = engine.remove_liquidity(request.who, pool_id, request.shares)
    return EventResponse.from_event(event)


@router.post("/pools/{pool_id}/liquidity/remove-one")
async def remove_liquidity_one_asset(
    pool_id: int,
    request: RemoveLiquidityOneAssetRequest,
    engine: PoolEngine = Depends(get_engine),
) -> EventResponse:
    event = engine.remove_liquidity_one_asset(request.who, pool_id, request.asset_id, request.shares)
    return EventResponse.from_event(event)


# =============================================================================
# Trading
# =============================================================================


@router.post("/pools/{pool_id}/sell")
async def sell(
    pool_id: int,
    request: SellRequest,
    engine: PoolEngine = Depends(get_engine),
) -> EventResponse:
    event = engine.sell(
        request.who,
        pool_id,
        request.asset_in,
        request.asset_out,
        request.amount_in,
        request.min_buy_amount,
    )
    return EventResponse.from_event(event)


@router.post("/pools/{pool_id}/buy")
async def buy(
    pool_id: int,
    request: BuyRequest,
    engine: PoolEngine = Depends(get_engine),
) -> EventResponse:
    event = engine.buy(
        request.who,
        pool_id,
        request.asset_out,
        request.asset_in,
        request.amount_out,
        request.max_sell_amount,
    )
    return EventResponse.from_event(event)


@router.get("/pools/{pool_id}/quote/sell")
async def quote_sell(
    pool_id: int,
    asset_in: int = Query(alias="assetIn"),
    asset_out: int = Query(alias="assetOut"),
    amount: int = Query(ge=0, le=UINT128_MAX),
    engine: PoolEngine = Depends(get_engine),
) -> QuoteResponse:
    """Quote selling an exact amount of assetIn."""
    quote = engine.quote_sell(pool_id, asset_in, asset_out, amount)
    return QuoteResponse(amount_in=quote.amount_in, amount_out=quote.amount_out, fee=quote.fee)


@router.get("/pools/{pool_id}/quote/buy")
async def quote_buy(
    pool_id: int,
    asset_in: int = Query(alias="assetIn"),
    asset_out: int = Query(alias="assetOut"),
    amount: int = Query(ge=0, le=UINT128_MAX),
    engine: PoolEngine = Depends(get_engine),
) -> QuoteResponse:
    """Quote buying an exact amount of assetOut."""
    quote = engine.quote_buy(pool_id, asset_out, asset_in, amount)
    return QuoteResponse(amount_in=quote.amount_in, amount_out=quote.amount_out, fee=quote.fee)
