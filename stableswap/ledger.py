"""Ledger and asset-registry collaborators.

The engine never owns balances. It reads them through a Ledger, stages the
transfers, mints and burns an operation needs, and hands the staged list to
apply_changes() only after every check has passed.

InMemoryLedger and InMemoryAssetRegistry are reference implementations
used by the tests and the HTTP service.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, TypeAlias, runtime_checkable

import structlog

from stableswap.errors import InsufficientBalance, InsufficientShares, Overflow
from stableswap.models.pool import AssetId
from stableswap.safe_int import UINT128_MAX

logger = structlog.get_logger()

# Prefix of pool custody account names
POOL_IDENTIFIER = "sts"


def pool_account(pool_id: AssetId) -> str:
    """Custody account holding a pool's reserves."""
    return f"{POOL_IDENTIFIER}/{pool_id}"


@runtime_checkable
class Ledger(Protocol):
    """Multi-asset balance ledger consumed by the engine."""

    def free_balance(self, asset: AssetId, account: str) -> int:
        """Spendable balance of account in asset."""
        ...

    def total_issuance(self, asset: AssetId) -> int:
        """Total amount of asset in existence."""
        ...

    def transfer(self, asset: AssetId, source: str, dest: str, amount: int) -> None:
        """Move amount of asset from source to dest."""
        ...

    def mint_shares(self, pool_id: AssetId, account: str, amount: int) -> None:
        """Create amount of the pool's share asset in account."""
        ...

    def burn_shares(self, pool_id: AssetId, account: str, amount: int) -> None:
        """Destroy amount of the pool's share asset held by account."""
        ...


@runtime_checkable
class AssetRegistry(Protocol):
    """Registry of known assets, also allocating pool share assets."""

    def exists(self, asset: AssetId) -> bool:
        ...

    def get_or_create_share_asset(self, assets: Sequence[AssetId]) -> AssetId:
        ...


# =============================================================================
# Staged changes
# =============================================================================


@dataclass(frozen=True)
class Transfer:
    asset: AssetId
    source: str
    dest: str
    amount: int


@dataclass(frozen=True)
class Mint:
    pool_id: AssetId
    account: str
    amount: int


@dataclass(frozen=True)
class Burn:
    pool_id: AssetId
    account: str
    amount: int


LedgerChange: TypeAlias = Transfer | Mint | Burn


def apply_changes(ledger: Ledger, changes: Iterable[LedgerChange]) -> None:
    """Apply staged changes to the ledger in order.

    The engine only calls this after all validation and math succeeded, so
    an error here means the ledger disagrees with what it reported moments
    before.
    """
    for change in changes:
        if isinstance(change, Transfer):
            ledger.transfer(change.asset, change.source, change.dest, change.amount)
        elif isinstance(change, Mint):
            ledger.mint_shares(change.pool_id, change.account, change.amount)
        elif isinstance(change, Burn):
            ledger.burn_shares(change.pool_id, change.account, change.amount)
        else:
            raise TypeError(f"Unknown ledger change: {type(change)}")


# =============================================================================
# In-memory implementations
# =============================================================================


class InMemoryLedger:
    """Dictionary-backed ledger.

    Balances are keyed by (asset, account); issuance is tracked per asset.
    """

    def __init__(self) -> None:
        self._balances: dict[tuple[AssetId, str], int] = defaultdict(int)
        self._issuance: dict[AssetId, int] = defaultdict(int)

    def free_balance(self, asset: AssetId, account: str) -> int:
        return self._balances.get((asset, account), 0)

    def total_issuance(self, asset: AssetId) -> int:
        return self._issuance.get(asset, 0)

    def deposit(self, asset: AssetId, account: str, amount: int) -> None:
        """Credit account with newly created units of asset.

        Raises:
            Overflow: If the balance or issuance would exceed 128 bits
        """
        new_balance = self.free_balance(asset, account) + amount
        new_issuance = self.total_issuance(asset) + amount
        if new_balance > UINT128_MAX or new_issuance > UINT128_MAX:
            raise Overflow(f"Deposit of {amount} overflows asset {asset}")
        self._balances[(asset, account)] = new_balance
        self._issuance[asset] = new_issuance

    def withdraw(self, asset: AssetId, account: str, amount: int) -> None:
        """Destroy units of asset held by account.

        Raises:
            InsufficientBalance: If account holds less than amount
        """
        balance = self.free_balance(asset, account)
        if balance < amount:
            raise InsufficientBalance(f"Account {account} holds {balance} of asset {asset}, needs {amount}")
        self._balances[(asset, account)] = balance - amount
        self._issuance[asset] -= amount

    def transfer(self, asset: AssetId, source: str, dest: str, amount: int) -> None:
        """Move amount of asset between accounts.

        Raises:
            InsufficientBalance: If source holds less than amount
        """
        balance = self.free_balance(asset, source)
        if balance < amount:
            raise InsufficientBalance(f"Account {source} holds {balance} of asset {asset}, needs {amount}")
        self._balances[(asset, source)] = balance - amount
        self._balances[(asset, dest)] = self.free_balance(asset, dest) + amount

    def mint_shares(self, pool_id: AssetId, account: str, amount: int) -> None:
        self.deposit(pool_id, account, amount)

    def burn_shares(self, pool_id: AssetId, account: str, amount: int) -> None:
        balance = self.free_balance(pool_id, account)
        if balance < amount:
            raise InsufficientShares(f"Account {account} holds {balance} shares of pool {pool_id}")
        self.withdraw(pool_id, account, amount)


class InMemoryAssetRegistry:
    """Set-backed asset registry.

    Share assets are allocated above the highest id seen so far; a given
    sorted asset list always maps to the same share asset.
    """

    def __init__(self, assets: Iterable[AssetId] = ()) -> None:
        self._assets: dict[AssetId, str] = {}
        self._share_assets: dict[tuple[AssetId, ...], AssetId] = {}
        for asset in assets:
            self.register(asset)

    def register(self, asset: AssetId, name: str = "") -> None:
        if asset in self._assets:
            logger.debug("asset_already_registered", asset=asset)
        self._assets[asset] = name or str(asset)

    def exists(self, asset: AssetId) -> bool:
        return asset in self._assets

    def name_of(self, asset: AssetId) -> str | None:
        return self._assets.get(asset)

    def get_or_create_share_asset(self, assets: Sequence[AssetId]) -> AssetId:
        key = tuple(sorted(assets))
        existing = self._share_assets.get(key)
        if existing is not None:
            return existing

        share_asset = max(self._assets, default=0) + 1
        name = POOL_IDENTIFIER + ":" + "/".join(str(a) for a in key)
        self._assets[share_asset] = name
        self._share_assets[key] = share_asset
        logger.debug("share_asset_created", share_asset=share_asset, name=name)
        return share_asset
