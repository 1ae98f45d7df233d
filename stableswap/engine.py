"""Stableswap pool engine.

PoolEngine orchestrates the math layer against pool configuration held in a
PoolRegistry and balances held by an external ledger. Every operation
follows the same shape:

1. Look up the pool and read reserves, issuance and caller balances
2. Validate the request and run all fallible math
3. Stage the resulting transfers, mints and burns
4. Apply the staged changes and return the event

Nothing is written to the ledger until step 4, so a failure in steps 1-3
leaves every balance untouched.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Sequence
from typing import ParamSpec, TypeVar

import structlog

from stableswap.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from stableswap.errors import (
    AssetNotInPool,
    AssetNotRegistered,
    BelowMinimumPoolLiquidity,
    BelowMinimumTradingAmount,
    BuyLimitNotReached,
    DuplicateOrTooFewAssets,
    InsufficientBalance,
    InsufficientLiquidity,
    InsufficientShares,
    InvalidAmplification,
    InvalidAssetAmount,
    InvalidInitialLiquidity,
    MaxAssetsExceeded,
    PoolAlreadyExists,
    PoolNotActive,
    SameAssets,
    SellLimitExceeded,
    StableswapError,
)
from stableswap.ledger import (
    AssetRegistry,
    Burn,
    Ledger,
    LedgerChange,
    Mint,
    Transfer,
    apply_changes,
    pool_account,
)
from stableswap.math import (
    SwapQuote,
    add_liquidity_shares,
    calculate_d,
    calculate_withdraw_one_asset,
    quote_in_given_out,
    quote_out_given_in,
    remove_liquidity_amounts,
)
from stableswap.math.fees import Permill
from stableswap.models.events import (
    BuyExecuted,
    LiquidityAdded,
    LiquidityRemoved,
    PoolCreated,
    SellExecuted,
)
from stableswap.models.pool import (
    AssetAmount,
    AssetId,
    PoolInfo,
    PoolSnapshot,
    PoolState,
    pool_state,
)
from stableswap.registry import PoolRegistry
from stableswap.safe_int import S

logger = structlog.get_logger()

P = ParamSpec("P")
R = TypeVar("R")


def _logs_rejections(operation: Callable[P, R]) -> Callable[P, R]:
    """Log a warning with the error code when an engine operation fails."""

    @functools.wraps(operation)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return operation(*args, **kwargs)
        except StableswapError as err:
            logger.warning(
                "operation_rejected",
                operation=operation.__name__,
                error=err.code,
                detail=str(err),
            )
            raise

    return wrapper


class PoolEngine:
    """Create pools, manage liquidity and execute trades.

    Args:
        ledger: Balance ledger holding reserves and share balances
        registry: Asset registry used to validate assets and allocate share assets
        config: Engine limits and solver settings
        pools: Pool registry to use (a fresh one if None)
    """

    def __init__(
        self,
        ledger: Ledger,
        registry: AssetRegistry,
        config: EngineConfig = DEFAULT_ENGINE_CONFIG,
        pools: PoolRegistry | None = None,
    ) -> None:
        self.ledger = ledger
        self.asset_registry = registry
        self.config = config
        self.pool_registry = pools if pools is not None else PoolRegistry()

    # =========================================================================
    # Read-only views
    # =========================================================================

    def get_pool(self, pool_id: AssetId) -> PoolInfo:
        """Pool configuration. Raises PoolNotFound for unknown ids."""
        return self.pool_registry.get(pool_id)

    def pools(self) -> list[AssetId]:
        """Ids of all registered pools, ascending."""
        return list(self.pool_registry)

    def reserves(self, pool_id: AssetId) -> list[int]:
        """Current reserves, in the order of the pool's asset list."""
        info = self.get_pool(pool_id)
        return self._read_reserves(pool_id, info)

    def get_pool_snapshot(self, pool_id: AssetId) -> PoolSnapshot:
        info = self.get_pool(pool_id)
        reserves = self._read_reserves(pool_id, info)
        issuance = self.ledger.total_issuance(pool_id)
        # D is undefined while only some reserves are funded
        invariant: int | None = None
        if all(reserves) or not any(reserves):
            invariant = calculate_d(
                reserves,
                info.ann,
                self.config.precision,
                max_iterations=self.config.max_d_iterations,
            )
        return PoolSnapshot(
            pool_id=pool_id,
            info=info,
            reserves=tuple(reserves),
            share_issuance=issuance,
            invariant=invariant,
            state=pool_state(reserves, issuance),
        )

    def quote_sell(
        self,
        pool_id: AssetId,
        asset_in: AssetId,
        asset_out: AssetId,
        amount_in: int,
    ) -> SwapQuote:
        """Quote selling amount_in of asset_in, without touching the ledger."""
        info, reserves, index_in, index_out = self._prepare_trade(pool_id, asset_in, asset_out)
        return quote_out_given_in(
            reserves,
            index_in,
            index_out,
            amount_in,
            info.amplification,
            self.config.precision,
            info.trade_fee,
            self.config.min_trading_limit,
            self.config.max_d_iterations,
            self.config.max_y_iterations,
        )

    def quote_buy(
        self,
        pool_id: AssetId,
        asset_out: AssetId,
        asset_in: AssetId,
        amount_out: int,
    ) -> SwapQuote:
        """Quote buying amount_out of asset_out, without touching the ledger."""
        info, reserves, index_in, index_out = self._prepare_trade(pool_id, asset_in, asset_out)
        return quote_in_given_out(
            reserves,
            index_in,
            index_out,
            amount_out,
            info.amplification,
            self.config.precision,
            info.trade_fee,
            self.config.min_trading_limit,
            self.config.max_d_iterations,
            self.config.max_y_iterations,
        )

    # =========================================================================
    # Pool lifecycle
    # =========================================================================

    @_logs_rejections
    def create_pool(
        self,
        assets: Sequence[AssetId],
        amplification: int,
        trade_fee: Permill | None = None,
        withdraw_fee: Permill | None = None,
    ) -> PoolCreated:
        """Create a pool over assets.

        The asset list is sorted; the pool id is the share asset allocated
        by the asset registry for that list.

        Raises:
            DuplicateOrTooFewAssets: Fewer than two assets, or duplicates
            MaxAssetsExceeded: More than config.max_assets assets
            InvalidAmplification: Amplification outside the configured range
            AssetNotRegistered: An asset is unknown to the registry
            PoolAlreadyExists: A pool over the same assets already exists
        """
        trade_fee = trade_fee if trade_fee is not None else Permill.zero()
        withdraw_fee = withdraw_fee if withdraw_fee is not None else Permill.zero()
        sorted_assets = tuple(sorted(assets))

        info = PoolInfo(
            assets=sorted_assets,
            amplification=amplification,
            trade_fee=trade_fee,
            withdraw_fee=withdraw_fee,
        )
        if not info.is_valid():
            raise DuplicateOrTooFewAssets(f"Pool needs at least two distinct assets, got {list(assets)}")
        if len(sorted_assets) > self.config.max_assets:
            raise MaxAssetsExceeded(f"Pool may hold at most {self.config.max_assets} assets, got {len(sorted_assets)}")
        if not self.config.amplification_in_range(amplification):
            low, high = self.config.amplification_range
            raise InvalidAmplification(f"Amplification {amplification} outside [{low}, {high}]")
        for asset in sorted_assets:
            if not self.asset_registry.exists(asset):
                raise AssetNotRegistered(f"Asset {asset} is not registered")

        existing = self.pool_registry.find_by_assets(sorted_assets)
        if existing is not None:
            raise PoolAlreadyExists(f"Pool {existing} already covers assets {list(sorted_assets)}")

        pool_id = self.asset_registry.get_or_create_share_asset(sorted_assets)
        self.pool_registry.add(pool_id, info)

        logger.info(
            "pool_created",
            pool_id=pool_id,
            assets=list(sorted_assets),
            amplification=amplification,
            trade_fee=str(trade_fee),
            withdraw_fee=str(withdraw_fee),
        )
        return PoolCreated(
            pool_id=pool_id,
            assets=sorted_assets,
            amplification=amplification,
            trade_fee=trade_fee,
            withdraw_fee=withdraw_fee,
        )

    # =========================================================================
    # Liquidity
    # =========================================================================

    @_logs_rejections
    def add_liquidity(
        self,
        who: str,
        pool_id: AssetId,
        assets: Sequence[AssetAmount],
    ) -> LiquidityAdded:
        """Deposit assets and mint shares to who.

        Any subset of pool assets may be supplied once every reserve is
        funded; the first deposit must supply all of them.

        Raises:
            PoolNotFound: Unknown pool
            AssetNotInPool: An entry names an asset outside the pool
            DuplicateOrTooFewAssets: An asset appears more than once
            InvalidAssetAmount: An amount is zero, or no shares would be minted
            BelowMinimumTradingAmount: An amount is below config.min_trading_limit
            InsufficientBalance: Caller cannot cover an amount
            InvalidInitialLiquidity: A reserve would remain empty
            BelowMinimumPoolLiquidity: Caller's share balance would stay below
                config.min_pool_liquidity
        """
        info = self.get_pool(pool_id)
        account = pool_account(pool_id)
        if not assets:
            raise InvalidAssetAmount("No assets supplied")
        initial_reserves = self._read_reserves(pool_id, info)
        updated_reserves = list(initial_reserves)
        seen: set[AssetId] = set()

        for entry in assets:
            index = info.find_asset(entry.asset_id)
            if index is None:
                raise AssetNotInPool(f"Asset {entry.asset_id} is not in pool {pool_id}")
            if entry.asset_id in seen:
                raise DuplicateOrTooFewAssets(f"Asset {entry.asset_id} supplied more than once")
            seen.add(entry.asset_id)

            if entry.amount == 0:
                raise InvalidAssetAmount(f"Deposit of asset {entry.asset_id} must be greater than zero")
            if entry.amount < self.config.min_trading_limit:
                raise BelowMinimumTradingAmount(
                    f"Deposit {entry.amount} of asset {entry.asset_id} is below minimum {self.config.min_trading_limit}"
                )
            self._require_balance(entry.asset_id, who, entry.amount)
            updated_reserves[index] = (S(updated_reserves[index]) + entry.amount).to_balance()

        for asset, reserve in zip(info.assets, updated_reserves, strict=True):
            if reserve == 0:
                raise InvalidInitialLiquidity(f"Reserve of asset {asset} would remain empty")

        issuance = self.ledger.total_issuance(pool_id)
        shares = add_liquidity_shares(
            initial_reserves,
            updated_reserves,
            self.config.precision,
            info.amplification,
            issuance,
            self.config.max_d_iterations,
        )
        if shares == 0:
            raise InvalidAssetAmount("Deposit is too small to mint any shares")

        share_balance = self.ledger.free_balance(pool_id, who)
        if share_balance + shares < self.config.min_pool_liquidity:
            raise BelowMinimumPoolLiquidity(
                f"Share balance {share_balance + shares} is below minimum {self.config.min_pool_liquidity}"
            )

        changes: list[LedgerChange] = [Transfer(entry.asset_id, who, account, entry.amount) for entry in assets]
        changes.append(Mint(pool_id, who, shares))
        apply_changes(self.ledger, changes)

        logger.info(
            "liquidity_added",
            pool_id=pool_id,
            who=who,
            shares=shares,
            deposits={entry.asset_id: entry.amount for entry in assets},
        )
        return LiquidityAdded(pool_id=pool_id, who=who, shares=shares, assets=tuple(assets))

    @_logs_rejections
    def remove_liquidity(self, who: str, pool_id: AssetId, shares: int) -> LiquidityRemoved:
        """Burn shares for a proportional share of every reserve.

        Raises:
            PoolNotFound: Unknown pool
            InvalidAssetAmount: shares is zero
            PoolNotActive: Pool has no liquidity
            InsufficientShares: Caller holds fewer than shares
            BelowMinimumPoolLiquidity: Caller's balance or the total issuance
                would be left between zero and config.min_pool_liquidity
            InsufficientLiquidity: A reserve would be emptied while shares remain
        """
        info = self.get_pool(pool_id)
        account = pool_account(pool_id)
        if shares == 0:
            raise InvalidAssetAmount("shares must be greater than zero")

        reserves = self._read_reserves(pool_id, info)
        issuance = self.ledger.total_issuance(pool_id)
        self._require_active(pool_id, reserves, issuance)
        self._require_removable(who, pool_id, shares, issuance, allow_full_exit=True)

        amounts = remove_liquidity_amounts(reserves, shares, issuance)
        if issuance - shares > 0:
            for asset, reserve, amount in zip(info.assets, reserves, amounts, strict=True):
                if amount >= reserve:
                    raise InsufficientLiquidity(f"Withdrawal would empty reserve of asset {asset}")

        changes: list[LedgerChange] = [Burn(pool_id, who, shares)]
        changes.extend(
            Transfer(asset, account, who, amount)
            for asset, amount in zip(info.assets, amounts, strict=True)
            if amount > 0
        )
        apply_changes(self.ledger, changes)

        withdrawn = tuple(AssetAmount(asset, amount) for asset, amount in zip(info.assets, amounts, strict=True))
        logger.info(
            "liquidity_removed",
            pool_id=pool_id,
            who=who,
            shares=shares,
            amounts={a.asset_id: a.amount for a in withdrawn},
        )
        return LiquidityRemoved(pool_id=pool_id, who=who, shares=shares, amounts=withdrawn)

    @_logs_rejections
    def remove_liquidity_one_asset(
        self,
        who: str,
        pool_id: AssetId,
        asset: AssetId,
        shares: int,
    ) -> LiquidityRemoved:
        """Burn shares for a single asset; the withdraw fee stays in the pool.

        Unlike proportional removal, the pool's issuance may not drop below
        config.min_pool_liquidity, so the last shares must exit proportionally.

        Raises:
            PoolNotFound: Unknown pool
            AssetNotInPool: asset is not in the pool
            InvalidAssetAmount: shares is zero, or nothing would be paid out
            PoolNotActive: Pool has no liquidity
            InsufficientShares: Caller holds fewer than shares
            BelowMinimumPoolLiquidity: Caller's balance would be left between zero
                and the minimum, or issuance would drop below the minimum
            InsufficientLiquidity: Payout would empty the asset's reserve
        """
        info = self.get_pool(pool_id)
        account = pool_account(pool_id)
        index = info.find_asset(asset)
        if index is None:
            raise AssetNotInPool(f"Asset {asset} is not in pool {pool_id}")
        if shares == 0:
            raise InvalidAssetAmount("shares must be greater than zero")

        reserves = self._read_reserves(pool_id, info)
        issuance = self.ledger.total_issuance(pool_id)
        self._require_active(pool_id, reserves, issuance)
        self._require_removable(who, pool_id, shares, issuance, allow_full_exit=False)

        amount, fee = calculate_withdraw_one_asset(
            reserves,
            shares,
            index,
            issuance,
            info.amplification,
            self.config.precision,
            info.withdraw_fee,
            self.config.max_d_iterations,
            self.config.max_y_iterations,
        )
        if amount >= reserves[index]:
            raise InsufficientLiquidity(f"Withdrawal of {amount} would empty reserve of asset {asset}")
        if amount == 0:
            raise InvalidAssetAmount(f"Burning {shares} shares releases nothing")

        apply_changes(
            self.ledger,
            [Burn(pool_id, who, shares), Transfer(asset, account, who, amount)],
        )

        logger.info(
            "liquidity_removed_one_asset",
            pool_id=pool_id,
            who=who,
            asset=asset,
            shares=shares,
            amount=amount,
            fee=fee,
        )
        return LiquidityRemoved(
            pool_id=pool_id,
            who=who,
            shares=shares,
            amounts=(AssetAmount(asset, amount),),
            fee=fee,
        )

    # =========================================================================
    # Trading
    # =========================================================================

    @_logs_rejections
    def sell(
        self,
        who: str,
        pool_id: AssetId,
        asset_in: AssetId,
        asset_out: AssetId,
        amount_in: int,
        min_buy_amount: int,
    ) -> SellExecuted:
        """Sell exactly amount_in of asset_in for at least min_buy_amount of asset_out.

        The trade fee is taken from the outgoing amount.

        Raises:
            SameAssets: asset_in equals asset_out
            PoolNotFound / AssetNotInPool / PoolNotActive: Pool lookup failures
            BelowMinimumTradingAmount: amount_in or the payout below the minimum
            InsufficientBalance: Caller cannot cover amount_in
            InsufficientLiquidity: Payout would empty the output reserve
            BuyLimitNotReached: Payout is below min_buy_amount
        """
        self.get_pool(pool_id)
        if amount_in < self.config.min_trading_limit:
            raise BelowMinimumTradingAmount(f"amount_in {amount_in} is below minimum {self.config.min_trading_limit}")
        self._require_balance(asset_in, who, amount_in)

        quote = self.quote_sell(pool_id, asset_in, asset_out, amount_in)
        if quote.amount_out < min_buy_amount:
            raise BuyLimitNotReached(f"amount_out {quote.amount_out} is below limit {min_buy_amount}")

        account = pool_account(pool_id)
        apply_changes(
            self.ledger,
            [
                Transfer(asset_in, who, account, amount_in),
                Transfer(asset_out, account, who, quote.amount_out),
            ],
        )

        logger.info(
            "sell_executed",
            pool_id=pool_id,
            who=who,
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=amount_in,
            amount_out=quote.amount_out,
            fee=quote.fee,
        )
        return SellExecuted(
            who=who,
            pool_id=pool_id,
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=amount_in,
            amount_out=quote.amount_out,
            fee=quote.fee,
        )

    @_logs_rejections
    def buy(
        self,
        who: str,
        pool_id: AssetId,
        asset_out: AssetId,
        asset_in: AssetId,
        amount_out: int,
        max_sell_amount: int,
    ) -> BuyExecuted:
        """Buy exactly amount_out of asset_out for at most max_sell_amount of asset_in.

        The trade fee is added to the incoming amount.

        Raises:
            SameAssets: asset_in equals asset_out
            PoolNotFound / AssetNotInPool / PoolNotActive: Pool lookup failures
            BelowMinimumTradingAmount: amount_out or the cost below the minimum
            InsufficientLiquidity: amount_out would empty the output reserve
            SellLimitExceeded: Cost exceeds max_sell_amount
            InsufficientBalance: Caller cannot cover the cost
        """
        self.get_pool(pool_id)
        if amount_out < self.config.min_trading_limit:
            raise BelowMinimumTradingAmount(f"amount_out {amount_out} is below minimum {self.config.min_trading_limit}")

        quote = self.quote_buy(pool_id, asset_out, asset_in, amount_out)
        if quote.amount_in > max_sell_amount:
            raise SellLimitExceeded(f"amount_in {quote.amount_in} exceeds limit {max_sell_amount}")
        self._require_balance(asset_in, who, quote.amount_in)

        account = pool_account(pool_id)
        apply_changes(
            self.ledger,
            [
                Transfer(asset_in, who, account, quote.amount_in),
                Transfer(asset_out, account, who, amount_out),
            ],
        )

        logger.info(
            "buy_executed",
            pool_id=pool_id,
            who=who,
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=quote.amount_in,
            amount_out=amount_out,
            fee=quote.fee,
        )
        return BuyExecuted(
            who=who,
            pool_id=pool_id,
            asset_in=asset_in,
            asset_out=asset_out,
            amount_in=quote.amount_in,
            amount_out=amount_out,
            fee=quote.fee,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _read_reserves(self, pool_id: AssetId, info: PoolInfo) -> list[int]:
        account = pool_account(pool_id)
        return [self.ledger.free_balance(asset, account) for asset in info.assets]

    def _prepare_trade(
        self,
        pool_id: AssetId,
        asset_in: AssetId,
        asset_out: AssetId,
    ) -> tuple[PoolInfo, list[int], int, int]:
        """Resolve pool, reserves and asset indices for a trade."""
        if asset_in == asset_out:
            raise SameAssets(f"Cannot trade asset {asset_in} for itself")
        info = self.get_pool(pool_id)
        index_in = info.find_asset(asset_in)
        if index_in is None:
            raise AssetNotInPool(f"Asset {asset_in} is not in pool {pool_id}")
        index_out = info.find_asset(asset_out)
        if index_out is None:
            raise AssetNotInPool(f"Asset {asset_out} is not in pool {pool_id}")

        reserves = self._read_reserves(pool_id, info)
        self._require_active(pool_id, reserves, self.ledger.total_issuance(pool_id))
        return info, reserves, index_in, index_out

    def _require_active(self, pool_id: AssetId, reserves: Sequence[int], issuance: int) -> None:
        state = pool_state(reserves, issuance)
        if state is not PoolState.ACTIVE:
            raise PoolNotActive(f"Pool {pool_id} is {state.value}")

    def _require_balance(self, asset: AssetId, who: str, amount: int) -> None:
        balance = self.ledger.free_balance(asset, who)
        if balance < amount:
            raise InsufficientBalance(f"Account {who} holds {balance} of asset {asset}, needs {amount}")

    def _require_removable(
        self,
        who: str,
        pool_id: AssetId,
        shares: int,
        issuance: int,
        allow_full_exit: bool,
    ) -> None:
        """Share checks shared by both withdrawal paths."""
        held = self.ledger.free_balance(pool_id, who)
        if held < shares:
            raise InsufficientShares(f"Account {who} holds {held} shares, needs {shares}")

        minimum = self.config.min_pool_liquidity
        remaining_held = held - shares
        if 0 < remaining_held < minimum:
            raise BelowMinimumPoolLiquidity(f"Remaining share balance {remaining_held} is below minimum {minimum}")

        remaining_issuance = issuance - shares
        if remaining_issuance == 0 and allow_full_exit:
            return
        if remaining_issuance < minimum:
            raise BelowMinimumPoolLiquidity(f"Remaining issuance {remaining_issuance} is below minimum {minimum}")


# Process-wide engine backed by in-memory collaborators, created on first use
_default_engine: PoolEngine | None = None


def _create_default_engine() -> PoolEngine:
    """Create an engine over an in-memory ledger and asset registry.

    Limits are read from STABLESWAP_* environment variables.
    """
    from stableswap.ledger import InMemoryAssetRegistry, InMemoryLedger

    config = EngineConfig.from_env()
    logger.info(
        "default_engine_created",
        precision=config.precision,
        min_pool_liquidity=config.min_pool_liquidity,
        min_trading_limit=config.min_trading_limit,
        amplification_range=list(config.amplification_range),
        max_assets=config.max_assets,
    )
    return PoolEngine(InMemoryLedger(), InMemoryAssetRegistry(), config)


def get_default_engine() -> PoolEngine:
    global _default_engine
    if _default_engine is None:
        _default_engine = _create_default_engine()
    return _default_engine
