"""Integration tests for the stableswap HTTP API."""

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from stableswap.api.endpoints import get_engine
from stableswap.api.main import app
from stableswap.safe_int import UINT128_MAX
from tests.helpers import ALICE, BOB, FIRST_POOL_ID, USDA, USDB, USDC, make_engine

POOL = FIRST_POOL_ID


@pytest.fixture
def client() -> Iterator[TestClient]:
    """Test client backed by a fresh in-memory engine."""
    engine = make_engine()
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded_client(client) -> TestClient:
    """Client with a USDA/USDB pool holding [1000, 2000] and bob funded."""
    response = client.post("/pools", json={"assets": [USDB, USDA], "amplification": 1})
    assert response.status_code == 201
    client.post(f"/accounts/{ALICE}/endow", json={"assetId": USDA, "amount": "1000"})
    client.post(f"/accounts/{ALICE}/endow", json={"assetId": USDB, "amount": "2000"})
    client.post(f"/accounts/{BOB}/endow", json={"assetId": USDA, "amount": "1000"})
    response = client.post(
        f"/pools/{POOL}/liquidity",
        json={
            "who": ALICE,
            "assets": [
                {"assetId": USDA, "amount": "1000"},
                {"assetId": USDB, "amount": "2000"},
            ],
        },
    )
    assert response.status_code == 200
    return client


class TestAssetsAndAccounts:
    """Tests for asset registration and balances."""

    def test_register_asset(self, client):
        response = client.post("/assets", json={"assetId": 42, "name": "USDX"})
        assert response.status_code == 201
        assert response.json() == {"assetId": 42, "name": "USDX"}

    def test_endow_and_read_balance(self, client):
        response = client.post(f"/accounts/{BOB}/endow", json={"assetId": USDA, "amount": "1000000000000000000000"})
        assert response.status_code == 200
        assert response.json() == {"account": BOB, "assetId": USDA, "balance": "1000000000000000000000"}

        response = client.get(f"/accounts/{BOB}/balances/{USDA}")
        assert response.json()["balance"] == "1000000000000000000000"

    def test_endow_overflow_is_arithmetic_error(self, client):
        """Balances wider than 128 bits are an arithmetic failure (422)."""
        client.post(f"/accounts/{BOB}/endow", json={"assetId": USDA, "amount": str(UINT128_MAX)})
        response = client.post(f"/accounts/{ALICE}/endow", json={"assetId": USDA, "amount": "1"})
        assert response.status_code == 422
        assert response.json()["error"] == "overflow"


class TestPools:
    """Tests for pool creation and lookup."""

    def test_create_pool(self, client):
        response = client.post(
            "/pools",
            json={"assets": [USDB, USDA], "amplification": 100, "tradeFee": "0.003"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["kind"] == "pool_created"
        assert body["data"]["pool_id"] == str(POOL)
        assert body["data"]["assets"] == [str(USDA), str(USDB)]
        assert body["data"]["trade_fee"] == "0.003"

    def test_duplicate_pool_conflict(self, client):
        client.post("/pools", json={"assets": [USDA, USDB], "amplification": 100})
        response = client.post("/pools", json={"assets": [USDA, USDB], "amplification": 100})
        assert response.status_code == 409
        assert response.json()["error"] == "pool_already_exists"

    def test_invalid_amplification(self, client):
        response = client.post("/pools", json={"assets": [USDA, USDB], "amplification": 0})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_amplification"

    def test_invalid_fee_is_validation_error(self, client):
        response = client.post("/pools", json={"assets": [USDA, USDB], "amplification": 100, "tradeFee": "1"})
        assert response.status_code == 422

    def test_unknown_pool(self, client):
        response = client.get("/pools/999")
        assert response.status_code == 404
        assert response.json()["error"] == "pool_not_found"

    def test_get_pool(self, seeded_client):
        response = seeded_client.get(f"/pools/{POOL}")
        assert response.status_code == 200
        assert response.json() == {
            "poolId": POOL,
            "assets": [USDA, USDB],
            "amplification": 1,
            "tradeFee": "0",
            "withdrawFee": "0",
            "reserves": ["1000", "2000"],
            "shareIssuance": "2940",
            "invariant": "2942",
            "state": "active",
        }

    def test_list_pools(self, seeded_client):
        response = seeded_client.get("/pools")
        assert [pool["poolId"] for pool in response.json()] == [POOL]


class TestLiquidity:
    """Tests for liquidity endpoints."""

    def test_add_liquidity_event(self, client):
        client.post("/pools", json={"assets": [USDA, USDB], "amplification": 1})
        client.post(f"/accounts/{ALICE}/endow", json={"assetId": USDA, "amount": "1000"})
        client.post(f"/accounts/{ALICE}/endow", json={"assetId": USDB, "amount": "2000"})

        response = client.post(
            f"/pools/{POOL}/liquidity",
            json={"who": ALICE, "assets": [{"assetId": USDA, "amount": "1000"}, {"assetId": USDB, "amount": "2000"}]},
        )

        body = response.json()
        assert body["kind"] == "liquidity_added"
        assert body["data"]["shares"] == "2940"

    def test_remove_liquidity(self, seeded_client):
        response = seeded_client.post(f"/pools/{POOL}/liquidity/remove", json={"who": ALICE, "shares": "940"})
        assert response.status_code == 200
        body = response.json()
        assert body["kind"] == "liquidity_removed"
        assert body["data"]["amounts"] == [
            {"asset_id": str(USDA), "amount": "319"},
            {"asset_id": str(USDB), "amount": "639"},
        ]

    def test_remove_liquidity_one_asset(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL}/liquidity/remove-one",
            json={"who": ALICE, "assetId": USDA, "shares": "940"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["amounts"] == [{"asset_id": str(USDA), "amount": "688"}]

    def test_insufficient_shares(self, seeded_client):
        response = seeded_client.post(f"/pools/{POOL}/liquidity/remove", json={"who": BOB, "shares": "1000"})
        assert response.status_code == 400
        assert response.json()["error"] == "insufficient_shares"


class TestTrading:
    """Tests for sell/buy and quote endpoints."""

    def test_quote_sell(self, seeded_client):
        response = seeded_client.get(
            f"/pools/{POOL}/quote/sell",
            params={"assetIn": USDA, "assetOut": USDB, "amount": 100},
        )
        assert response.status_code == 200
        assert response.json() == {"amountIn": "100", "amountOut": "121", "fee": "0"}

    def test_quote_buy(self, seeded_client):
        response = seeded_client.get(
            f"/pools/{POOL}/quote/buy",
            params={"assetIn": USDA, "assetOut": USDB, "amount": 121},
        )
        assert response.json() == {"amountIn": "100", "amountOut": "121", "fee": "0"}

    def test_sell(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL}/sell",
            json={"who": BOB, "assetIn": USDA, "assetOut": USDB, "amountIn": "100", "minBuyAmount": "120"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["amount_out"] == "121"
        assert seeded_client.get(f"/accounts/{BOB}/balances/{USDB}").json()["balance"] == "121"

    def test_buy(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL}/buy",
            json={"who": BOB, "assetIn": USDA, "assetOut": USDB, "amountOut": "121", "maxSellAmount": "100"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["kind"] == "buy_executed"
        assert body["data"]["amount_in"] == "100"

    def test_slippage_rejected(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL}/sell",
            json={"who": BOB, "assetIn": USDA, "assetOut": USDB, "amountIn": "100", "minBuyAmount": "500"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "buy_limit_not_reached"
        assert seeded_client.get(f"/accounts/{BOB}/balances/{USDA}").json()["balance"] == "1000"

    def test_asset_not_in_pool(self, seeded_client):
        response = seeded_client.get(
            f"/pools/{POOL}/quote/sell",
            params={"assetIn": USDC, "assetOut": USDB, "amount": 100},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "asset_not_in_pool"

    def test_malformed_amount(self, seeded_client):
        response = seeded_client.post(
            f"/pools/{POOL}/sell",
            json={"who": BOB, "assetIn": USDA, "assetOut": USDB, "amountIn": "lots"},
        )
        assert response.status_code == 422
