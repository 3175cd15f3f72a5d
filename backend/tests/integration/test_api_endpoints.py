"""
Integration Tests - API Endpoints
Tests for the REST API over an in-memory database.
"""
import pytest
import pytest_asyncio
from decimal import Decimal

from httpx import ASGITransport, AsyncClient

from investment_tracker.core.security import create_access_token
from investment_tracker.dependencies import get_db, get_locks, get_notifier
from investment_tracker.main import app

API = "/api/v1"


@pytest_asyncio.fixture
async def client(db_session, notifier, locks):
    """HTTP client authenticated as user 1."""
    async def override_db():
        yield db_session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_locks] = lambda: locks

    token, _ = create_access_token(1)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as http:
        yield http

    await notifier.drain()
    app.dependency_overrides.clear()


async def create_portfolio(client, base_currency="USD"):
    response = await client.post(f"{API}/portfolios/", json={
        "name": f"{base_currency} Stocks",
        "base_currency": base_currency,
        "home_currency": "TWD",
    })
    assert response.status_code == 201
    return response.json()


async def deposit(client, ledger_id, amount="1000"):
    response = await client.post(f"{API}/currency-transactions/", json={
        "currency_ledger_id": ledger_id,
        "transaction_date": "2024-01-02",
        "transaction_type": "exchange_buy",
        "foreign_amount": amount,
        "home_amount": "30000",
        "exchange_rate": "30",
    })
    assert response.status_code == 201
    return response.json()


async def buy(client, portfolio_id, **overrides):
    payload = {
        "portfolio_id": portfolio_id,
        "transaction_date": "2024-01-10",
        "ticker": "AAPL",
        "transaction_type": "buy",
        "shares": "10",
        "price_per_share": "50",
        "fees": "5",
        "exchange_rate": "30",
    }
    payload.update(overrides)
    return await client.post(f"{API}/stock-transactions/", json=payload)


class TestHealthAndAuth:
    """Tests for public endpoints and authentication."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get(f"{API}/portfolios/", headers={"Authorization": ""})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get(f"{API}/portfolios/", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401


class TestPortfolioEndpoints:
    """Tests for portfolio endpoints."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, client):
        portfolio = await create_portfolio(client)
        assert portfolio["base_currency"] == "USD"
        assert portfolio["bound_currency_ledger_id"] is not None

        response = await client.get(f"{API}/portfolios/")
        assert [p["id"] for p in response.json()] == [portfolio["id"]]

    @pytest.mark.asyncio
    async def test_unknown_portfolio(self, client):
        response = await client.get(f"{API}/portfolios/999")
        assert response.status_code == 404
        assert response.json()["code"] == "PORTFOLIO_NOT_FOUND"


class TestTradeEndpoints:
    """Tests for trade recording through the API."""

    @pytest.mark.asyncio
    async def test_buy_updates_ledger(self, client):
        portfolio = await create_portfolio(client)
        ledger_id = portfolio["bound_currency_ledger_id"]
        await deposit(client, ledger_id)

        response = await buy(client, portfolio["id"])

        assert response.status_code == 201
        body = response.json()
        assert Decimal(body["ledger_balance"]) == Decimal("495")
        assert body["currency_transaction"]["transaction_type"] == "spend"
        assert body["currency_transaction"]["is_locked"] is True

        summary = (await client.get(f"{API}/currency-ledgers/{ledger_id}/summary")).json()
        assert Decimal(summary["balance"]) == Decimal("495")
        assert len(summary["running_balances"]) == 2

    @pytest.mark.asyncio
    async def test_skip_ledger_records_trade_only(self, client):
        portfolio = await create_portfolio(client)
        ledger_id = portfolio["bound_currency_ledger_id"]
        await deposit(client, ledger_id)

        response = await buy(client, portfolio["id"], skip_ledger=True)

        assert response.status_code == 201
        body = response.json()
        assert body["currency_transaction"] is None
        assert Decimal(body["ledger_balance"]) == Decimal("1000")
        entries = (await client.get(f"{API}/currency-ledgers/{ledger_id}/transactions")).json()
        assert [e["transaction_type"] for e in entries] == ["exchange_buy"]

    @pytest.mark.asyncio
    async def test_currency_mismatch_is_422(self, client):
        portfolio = await create_portfolio(client)

        response = await buy(client, portfolio["id"], ticker="2330", currency="TWD")

        assert response.status_code == 422
        assert response.json()["code"] == "CURRENCY_MISMATCH"
        assert "不符" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_domain_validation_is_400(self, client):
        portfolio = await create_portfolio(client)

        response = await buy(client, portfolio["id"], shares="0")

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "shares"

    @pytest.mark.asyncio
    async def test_delete_trade_removes_entry(self, client):
        portfolio = await create_portfolio(client)
        ledger_id = portfolio["bound_currency_ledger_id"]
        await deposit(client, ledger_id)
        trade = (await buy(client, portfolio["id"])).json()

        response = await client.delete(f"{API}/stock-transactions/{trade['stock_transaction']['id']}")
        assert response.status_code == 204

        entries = (await client.get(f"{API}/currency-ledgers/{ledger_id}/transactions")).json()
        assert [e["transaction_type"] for e in entries] == ["exchange_buy"]

    @pytest.mark.asyncio
    async def test_list_trades(self, client):
        portfolio = await create_portfolio(client)
        await buy(client, portfolio["id"])
        await buy(client, portfolio["id"], ticker="MSFT")

        response = await client.get(f"{API}/stock-transactions/", params={"portfolio_id": portfolio["id"], "ticker": "msft"})

        assert response.status_code == 200
        assert [t["ticker"] for t in response.json()] == ["MSFT"]


class TestCurrencyTransactionEndpoints:
    """Tests for manual ledger entries through the API."""

    @pytest.mark.asyncio
    async def test_related_trade_id_rejected(self, client):
        portfolio = await create_portfolio(client)

        response = await client.post(f"{API}/currency-transactions/", json={
            "currency_ledger_id": portfolio["bound_currency_ledger_id"],
            "transaction_date": "2024-01-02",
            "transaction_type": "deposit",
            "foreign_amount": "100",
            "related_stock_transaction_id": 1,
        })

        assert response.status_code == 400
        assert response.json()["detail"] == (
            "RelatedStockTransactionId cannot be provided when creating currency transactions."
        )

    @pytest.mark.asyncio
    async def test_locked_entry_cannot_be_deleted(self, client):
        portfolio = await create_portfolio(client)
        trade = (await buy(client, portfolio["id"])).json()

        response = await client.delete(f"{API}/currency-transactions/{trade['currency_transaction']['id']}")

        assert response.status_code == 422
        assert response.json()["code"] == "LOCKED_TRANSACTION"

    @pytest.mark.asyncio
    async def test_notes_edit(self, client):
        portfolio = await create_portfolio(client)
        entry = await deposit(client, portfolio["bound_currency_ledger_id"])

        response = await client.patch(f"{API}/currency-transactions/{entry['id']}", json={"notes": "bonus"})

        assert response.status_code == 200
        assert response.json()["notes"] == "bonus"


class TestPerformanceEndpoints:
    """Tests for performance endpoints."""

    @pytest.mark.asyncio
    async def test_portfolio_year(self, client):
        portfolio = await create_portfolio(client)
        await deposit(client, portfolio["bound_currency_ledger_id"])
        await buy(client, portfolio["id"])

        response = await client.post(f"{API}/performance/portfolios/{portfolio['id']}/years/2024", json={
            "year_end_prices": {"AAPL": {"price": "60"}},
            "year_end_exchange_rates": {"USD": "32"},
        })

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["end_value_home"]) == Decimal("35040")
        assert body["total_return_percentage"] == pytest.approx(16.8)
        assert body["is_complete"] is True

    @pytest.mark.asyncio
    async def test_missing_prices_listed(self, client):
        portfolio = await create_portfolio(client)
        await deposit(client, portfolio["bound_currency_ledger_id"])
        await buy(client, portfolio["id"])

        response = await client.post(f"{API}/performance/aggregate/years/2024", json={
            "year_end_exchange_rates": {"USD": "32"},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["is_complete"] is False
        assert body["missing_prices"] == [{"ticker": "AAPL", "price_type": "year_end", "market": "us"}]

    @pytest.mark.asyncio
    async def test_available_years(self, client):
        portfolio = await create_portfolio(client)
        await buy(client, portfolio["id"])

        response = await client.get(f"{API}/performance/aggregate/years")

        body = response.json()
        assert body["years"][0] == body["current_year"]
        assert body["years"][-1] == 2024

    @pytest.mark.asyncio
    async def test_lifetime_xirr(self, client):
        portfolio = await create_portfolio(client)
        await buy(client, portfolio["id"])

        response = await client.post(f"{API}/performance/portfolios/{portfolio['id']}/xirr", json={
            "current_prices": {"AAPL": {"price": "60", "exchange_rate": "32"}},
            "as_of": "2024-12-31",
        })

        assert response.status_code == 200
        assert response.json()["xirr_percentage"] > 0
