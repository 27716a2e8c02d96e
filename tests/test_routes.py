"""
Tests for the HTTP endpoints.

Tests cover:
- Transaction CRUD and boundary validation
- Portfolio positions, summary, allocation and per-asset detail
- Logged trade CRUD, closing, preview, bulk creation and statistics
- Trade list filters by symbol, source, strategy, status and open date
- Strategy CRUD and untagging trades when a strategy is deleted
"""

import json

import pytest

from tradebook import crud
from tradebook.models import LoggedTrade


def add_transaction(client, **overrides):
    payload = {"name": "BTC", "quantity": 1, "price_per_unit": 10000, "type": "buy", "date": "2024-01-01"}
    payload.update(overrides)
    response = client.post("/assets", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["transaction"]


def add_trade(client, **overrides):
    payload = {
        "name": "BTCUSDT",
        "open_date": "2024-03-01T09:30",
        "open_price": 100,
        "direction": "long",
        "level": 5,
        "volume": 2,
    }
    payload.update(overrides)
    response = client.post("/trading-history", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["trade"]


def add_strategy(client, **overrides):
    payload = {"name": "Breakout", "description": "Range breakout", "image_references": ["a.png"]}
    payload.update(overrides)
    response = client.post("/strategies", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["strategy"]


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_root(self, client):
        assert client.get("/").status_code == 200


class TestTransactions:
    """Tests for /assets."""

    def test_create_and_list(self, client):
        created = add_transaction(client, notes="first buy")

        assert created["id"] > 0
        assert created["name"] == "BTC"
        assert created["date"] == "2024-01-01"
        assert created["notes"] == "first buy"

        listed = client.get("/assets").json()["transactions"]
        assert [t["id"] for t in listed] == [created["id"]]

    def test_list_newest_first(self, client):
        old = add_transaction(client, date="2024-01-01")
        new = add_transaction(client, date="2024-02-01")
        same_day = add_transaction(client, date="2024-02-01")

        listed = client.get("/assets").json()["transactions"]

        assert [t["id"] for t in listed] == [same_day["id"], new["id"], old["id"]]

    @pytest.mark.parametrize("override", [
        {"quantity": 0},
        {"quantity": -1},
        {"price_per_unit": 0},
        {"name": "   "},
        {"type": "hold"},
        {"date": None},
    ])
    def test_create_rejects_invalid_input(self, client, override):
        payload = {"name": "BTC", "quantity": 1, "price_per_unit": 10000, "type": "buy", "date": "2024-01-01"}
        payload.update(override)

        response = client.post("/assets", json=payload)

        assert response.status_code == 422
        assert client.get("/assets").json()["transactions"] == []

    def test_update_only_given_fields(self, client):
        created = add_transaction(client, notes="keep me")

        response = client.put(f"/assets/{created['id']}", json={"price_per_unit": 12000, "type": "sell"})

        assert response.status_code == 200
        updated = response.json()["transaction"]
        assert updated["price_per_unit"] == 12000
        assert updated["type"] == "sell"
        assert updated["quantity"] == 1
        assert updated["notes"] == "keep me"

    def test_update_validation(self, client):
        created = add_transaction(client)

        assert client.put(f"/assets/{created['id']}", json={}).status_code == 400
        assert client.put(f"/assets/{created['id']}", json={"quantity": -2}).status_code == 422
        assert client.put(f"/assets/{created['id']}", json={"quantity": None}).status_code == 422
        assert client.put("/assets/999", json={"quantity": 2}).status_code == 404

    def test_delete(self, client):
        created = add_transaction(client)

        assert client.delete(f"/assets/{created['id']}").status_code == 200
        assert client.get("/assets").json()["transactions"] == []
        assert client.delete(f"/assets/{created['id']}").status_code == 404


class TestPortfolio:
    """Tests for /portfolio."""

    @pytest.fixture
    def ledger(self, client):
        add_transaction(client, name="BTC", quantity=1, price_per_unit=10000, date="2024-01-01")
        add_transaction(client, name="BTC", quantity=1, price_per_unit=20000, date="2024-02-01")
        add_transaction(client, name="BTC", type="sell", quantity=1, price_per_unit=25000, date="2024-03-01")
        add_transaction(client, name="ETH", quantity=2, price_per_unit=1000, date="2024-03-01")

    def test_positions(self, client, ledger):
        positions = client.get("/portfolio/positions").json()["positions"]

        assert [p["name"] for p in positions] == ["BTC", "ETH"]
        btc = positions[0]
        assert btc["net_quantity"] == pytest.approx(1)
        assert btc["average_buy_price"] == pytest.approx(15000)
        assert btc["current_reference_price"] == pytest.approx(25000)
        assert btc["realized_profit"] == pytest.approx(10000)
        eth = positions[1]
        assert eth["realized_profit"] is None
        assert eth["realized_profit_percent"] is None

    def test_summary(self, client, ledger):
        body = client.get("/portfolio/summary", params={"initial_capital": 50000}).json()

        summary = body["summary"]
        assert summary["initial_capital"] == 50000
        assert summary["total_profit"] == pytest.approx(10000)
        assert summary["total_usdt"] == pytest.approx(60000)
        assert summary["holdings_value"] == pytest.approx(27000)
        assert summary["remaining_capital"] == pytest.approx(33000)
        assert len(body["positions"]) == 2

    def test_summary_default_capital(self, client):
        summary = client.get("/portfolio/summary").json()["summary"]

        assert summary["initial_capital"] == 2000
        assert summary["total_profit"] == 0
        assert summary["remaining_capital"] == 2000

    def test_allocation(self, client, ledger):
        allocation = client.get("/portfolio/allocation").json()["allocation"]

        slices = {s["name"]: s for s in allocation}
        assert slices["BTC"]["value"] == pytest.approx(15000)
        assert slices["ETH"]["value"] == pytest.approx(2000)
        assert slices["BTC"]["percent"] == pytest.approx(15000 / 17000 * 100)

    def test_allocation_empty(self, client):
        allocation = client.get("/portfolio/allocation").json()["allocation"]

        assert allocation == [{"name": "USDT", "value": 0.0, "percent": 100.0}]

    def test_detail(self, client, ledger):
        detail = client.get("/portfolio/assets/BTC").json()["detail"]

        assert detail["name"] == "BTC"
        assert [t["date"] for t in detail["transactions"]] == ["2024-03-01", "2024-02-01", "2024-01-01"]
        assert detail["summary"]["realized_profit_percent"] == pytest.approx(66.6667, rel=1e-4)

    def test_detail_unknown_asset(self, client):
        assert client.get("/portfolio/assets/XRP").status_code == 404

    @pytest.mark.parametrize("name", ["BTC/USDT", "summary", "positions"])
    def test_detail_for_awkward_names(self, client, name):
        add_transaction(client, name=name, quantity=2, price_per_unit=50)

        response = client.get(f"/portfolio/assets/{name}")

        assert response.status_code == 200
        detail = response.json()["detail"]
        assert detail["name"] == name
        assert detail["summary"]["net_quantity"] == pytest.approx(2)


class TestTrades:
    """Tests for /trading-history."""

    def test_create_open_trade(self, client):
        created = add_trade(client, reference_images="a.png, b.png", order_type="swing")

        assert created["status"] == "opening"
        assert created["profit"] is None
        assert created["close_price"] is None
        assert created["reference_images"] == ["a.png", "b.png"]
        assert created["order_type"] == "swing"
        assert created["strategy_name"] is None

    def test_create_closed_trade_reports_profit(self, client):
        created = add_trade(client, close_price=110, close_date="2024-03-02")

        assert created["status"] == "closed"
        assert created["profit"] == pytest.approx(1.0)

    def test_short_trade_profit(self, client):
        created = add_trade(client, direction="short", close_price=90)

        assert created["profit"] == pytest.approx(1.0)

    def test_legacy_order_type_spelling(self, client):
        assert add_trade(client, order_type="scaping")["order_type"] == "scalping"

    @pytest.mark.parametrize("override", [
        {"open_price": 0},
        {"level": 0},
        {"volume": -1},
        {"direction": "sideways"},
        {"order_type": "daytrade"},
        {"name": ""},
        {"open_date": ""},
    ])
    def test_create_rejects_invalid_input(self, client, override):
        payload = {"name": "BTCUSDT", "open_date": "2024-03-01", "open_price": 100, "level": 5, "volume": 2}
        payload.update(override)

        assert client.post("/trading-history", json=payload).status_code == 422

    def test_unknown_strategy(self, client):
        payload = {"name": "BTCUSDT", "open_date": "2024-03-01", "open_price": 100, "level": 5, "volume": 2,
                   "strategy_id": 42}

        assert client.post("/trading-history", json=payload).status_code == 400

    def test_list_newest_first_with_strategy_name(self, client):
        strategy = add_strategy(client)
        first = add_trade(client)
        second = add_trade(client, strategy_id=strategy["id"])

        trades = client.get("/trading-history").json()["trades"]

        assert [t["id"] for t in trades] == [second["id"], first["id"]]
        assert trades[0]["strategy_name"] == "Breakout"

    def test_close_and_preview(self, client):
        created = add_trade(client)

        preview = client.post(f"/trading-history/{created['id']}/preview", json={"close_price": 120}).json()
        assert preview["data"]["profit"] == pytest.approx(2.0)
        still_open = client.get("/trading-history").json()["trades"][0]
        assert still_open["status"] == "opening"

        closed = client.post(
            f"/trading-history/{created['id']}/close", json={"close_price": 120, "close_date": "2024-03-05"}
        ).json()["trade"]
        assert closed["status"] == "closed"
        assert closed["close_date"] == "2024-03-05"
        assert closed["profit"] == pytest.approx(2.0)

    def test_close_defaults_date(self, client):
        created = add_trade(client)

        closed = client.post(f"/trading-history/{created['id']}/close", json={"close_price": 90}).json()["trade"]

        assert closed["close_date"]

    def test_close_and_preview_unknown_trade(self, client):
        assert client.post("/trading-history/999/close", json={"close_price": 1}).status_code == 404
        assert client.post("/trading-history/999/preview", json={"close_price": 1}).status_code == 404

    def test_update(self, client):
        created = add_trade(client, notes="keep")

        response = client.put(f"/trading-history/{created['id']}", json={"level": 10, "reference_images": ["c.png"]})

        updated = response.json()["trade"]
        assert updated["level"] == 10
        assert updated["reference_images"] == ["c.png"]
        assert updated["notes"] == "keep"

    def test_update_can_reopen(self, client):
        created = add_trade(client, close_price=110, close_date="2024-03-02")

        reopened = client.put(
            f"/trading-history/{created['id']}", json={"close_price": None, "close_date": None}
        ).json()["trade"]

        assert reopened["status"] == "opening"
        assert reopened["profit"] is None

    def test_update_validation(self, client):
        created = add_trade(client)

        assert client.put(f"/trading-history/{created['id']}", json={}).status_code == 400
        assert client.put(f"/trading-history/{created['id']}", json={"level": None}).status_code == 422
        assert client.put(f"/trading-history/{created['id']}", json={"strategy_id": 77}).status_code == 400
        assert client.put("/trading-history/999", json={"level": 2}).status_code == 404

    def test_delete(self, client):
        created = add_trade(client)

        assert client.delete(f"/trading-history/{created['id']}").status_code == 200
        assert client.get("/trading-history").json()["trades"] == []
        assert client.delete(f"/trading-history/{created['id']}").status_code == 404

    def test_bulk_create(self, client):
        strategy = add_strategy(client)
        payload = {
            "open_date": "2024-04-01",
            "direction": "short",
            "level": 3,
            "source": "Bybit",
            "strategy_id": strategy["id"],
            "rows": [
                {"name": "BTCUSDT", "open_price": 60000, "volume": 100},
                {"name": "ETHUSDT", "open_price": 3000, "volume": 50},
            ],
        }

        response = client.post("/trading-history/bulk", json=payload)

        assert response.status_code == 201
        trades = response.json()["trades"]
        assert [t["name"] for t in trades] == ["BTCUSDT", "ETHUSDT"]
        assert all(t["direction"] == "short" and t["level"] == 3 for t in trades)
        assert all(t["status"] == "opening" and t["strategy_name"] == "Breakout" for t in trades)

    def test_bulk_requires_rows(self, client):
        payload = {"open_date": "2024-04-01", "level": 3, "rows": []}

        assert client.post("/trading-history/bulk", json=payload).status_code == 422

    def test_stats(self, client):
        add_trade(client, name="BTCUSDT", close_price=110)
        add_trade(client, name="BTCUSDT", close_price=120)
        add_trade(client, name="ETHUSDT", direction="short", close_price=110)
        add_trade(client, name="ETHUSDT")

        stats = client.get("/trading-history/stats").json()["stats"]

        assert stats["open_trades"] == 1
        assert stats["closed_trades"] == 3
        assert stats["total_profit"] == pytest.approx(3.0)
        assert stats["total_loss"] == pytest.approx(1.0)
        assert stats["symbols"][0]["name"] == "BTCUSDT"

    def test_malformed_stored_images_read_as_list(self, client, db):
        created = add_trade(client)
        db.get(LoggedTrade, created["id"]).reference_images = '["broken'
        db.commit()

        trade = client.get("/trading-history").json()["trades"][0]

        assert trade["reference_images"] == ['["broken']

    def test_legacy_order_type_in_storage_reads_normalized(self, client, db):
        created = add_trade(client)
        db.get(LoggedTrade, created["id"]).order_type = "scaping"
        db.commit()

        trade = client.get("/trading-history").json()["trades"][0]

        assert trade["order_type"] == "scalping"


class TestTradeFilters:
    """Tests for the query filters on GET /trading-history."""

    @pytest.fixture
    def journal(self, client):
        strategy = add_strategy(client)
        return {
            "btc": add_trade(client, name="BTCUSDT", source="Telegram VIP", open_date="2024-01-10",
                             strategy_id=strategy["id"]),
            "eth": add_trade(client, name="ETHUSDT", source="own analysis", open_date="2024-02-15",
                             close_price=110),
            "sol": add_trade(client, name="SOLUSDT", source="telegram free", open_date="2024-03-20T08:00",
                             close_price=90, strategy_id=strategy["id"]),
            "undated": add_trade(client, name="btc-perp", open_date="last week"),
            "strategy": strategy,
        }

    def listed(self, client, **params):
        response = client.get("/trading-history", params=params)
        assert response.status_code == 200, response.text
        return [t["id"] for t in response.json()["trades"]]

    def test_no_filters_lists_everything(self, client, journal):
        assert len(self.listed(client)) == 4
        assert len(self.listed(client, status="all")) == 4

    def test_name_is_case_insensitive_substring(self, client, journal):
        assert self.listed(client, name="btc") == [journal["undated"]["id"], journal["btc"]["id"]]

    def test_source_is_case_insensitive_substring(self, client, journal):
        assert self.listed(client, source="TELEGRAM") == [journal["sol"]["id"], journal["btc"]["id"]]

    def test_strategy(self, client, journal):
        assert self.listed(client, strategy_id=journal["strategy"]["id"]) == [journal["sol"]["id"], journal["btc"]["id"]]
        assert self.listed(client, strategy_id=999) == []

    def test_status(self, client, journal):
        assert self.listed(client, status="opening") == [journal["undated"]["id"], journal["btc"]["id"]]
        assert self.listed(client, status="closed") == [journal["sol"]["id"], journal["eth"]["id"]]
        assert client.get("/trading-history", params={"status": "pending"}).status_code == 422

    def test_open_date_range_is_inclusive(self, client, journal):
        listed = self.listed(client, **{"from": "2024-02-15", "to": "2024-03-20"})

        assert journal["sol"]["id"] in listed
        assert journal["eth"]["id"] in listed
        assert journal["btc"]["id"] not in listed

    def test_unreadable_open_date_passes_date_range(self, client, journal):
        assert self.listed(client, **{"from": "2030-01-01"}) == [journal["undated"]["id"]]
        assert journal["undated"]["id"] in self.listed(client, to="2000-01-01")

    def test_filters_combine(self, client, journal):
        assert self.listed(client, source="telegram", status="opening") == [journal["btc"]["id"]]

    def test_invalid_date_is_rejected(self, client):
        assert client.get("/trading-history", params={"from": "soon"}).status_code == 422


class TestStrategies:
    """Tests for /strategies."""

    def test_create_and_list(self, client):
        first = add_strategy(client, name="Breakout")
        second = add_strategy(client, name="Mean reversion", image_references="x.png, y.png")

        strategies = client.get("/strategies").json()["strategies"]

        assert [s["id"] for s in strategies] == [second["id"], first["id"]]
        assert strategies[0]["image_references"] == ["x.png", "y.png"]

    def test_create_without_images(self, client):
        created = add_strategy(client, image_references=None, description=None)

        assert created["image_references"] == []
        assert created["description"] is None

    def test_create_requires_name(self, client):
        assert client.post("/strategies", json={"name": " "}).status_code == 422

    def test_update(self, client):
        created = add_strategy(client)

        updated = client.put(f"/strategies/{created['id']}", json={"description": "Retest only"}).json()["strategy"]

        assert updated["description"] == "Retest only"
        assert updated["name"] == "Breakout"
        assert updated["image_references"] == ["a.png"]
        assert client.put("/strategies/999", json={"name": "x"}).status_code == 404
        assert client.put(f"/strategies/{created['id']}", json={}).status_code == 400

    def test_delete_keeps_trades_untagged(self, client):
        strategy = add_strategy(client)
        trade = add_trade(client, strategy_id=strategy["id"])

        assert client.delete(f"/strategies/{strategy['id']}").status_code == 200

        [kept] = client.get("/trading-history").json()["trades"]
        assert kept["id"] == trade["id"]
        assert kept["strategy_id"] is None
        assert kept["strategy_name"] is None
        assert client.delete(f"/strategies/{strategy['id']}").status_code == 404


class TestCrud:
    """Direct tests of the data access functions."""

    def test_stored_lists_are_json(self, db):
        from tradebook.schemas import StrategyCreate

        record = crud.create_strategy(db, StrategyCreate(name="Tagged", image_references=["a", "b"]))

        assert json.loads(record.image_references) == ["a", "b"]

    def test_missing_records(self, db):
        assert crud.get_transaction(db, 1) is None
        assert crud.get_trade(db, 1) is None
        assert crud.get_strategy(db, 1) is None
        assert crud.delete_transaction(db, 1) is False
        assert crud.delete_trade(db, 1) is False
        assert crud.delete_strategy(db, 1) is False
