from __future__ import annotations

import pytest

from src.execution.state_store import InMemoryStateStore, JsonStateStore
from src.models import LegRecord, MultientryOrder, TradingConfig


@pytest.fixture(params=["json", "memory"])
def store(request: pytest.FixtureRequest, workspace_tmp_path):
    if request.param == "json":
        return JsonStateStore(workspace_tmp_path / "state", history_limit=3)
    return InMemoryStateStore(history_limit=3)


def test_alert_history_is_newest_first_and_capped(store, make_alert) -> None:
    for index in range(5):
        store.append_alert(make_alert(id=f"a{index}"))

    alerts = store.list_alerts()
    assert [alert.id for alert in alerts] == ["a4", "a3", "a2"]
    assert [alert.id for alert in store.list_alerts(limit=1)] == ["a4"]
    assert store.get_alert("a0") is None


def test_update_alert_replaces_in_place(store, make_alert) -> None:
    alert = make_alert(id="a1")
    store.append_alert(alert)
    store.append_alert(make_alert(id="a2"))

    alert.status = "failed"
    alert.error = "Exchange API error: Invalid symbol."
    store.update_alert(alert)

    loaded = store.get_alert("a1")
    assert loaded.status == "failed"
    assert loaded.error == "Exchange API error: Invalid symbol."
    assert [a.id for a in store.list_alerts()] == ["a2", "a1"]


def test_multientry_orders_overwrite_by_correlation_id(store) -> None:
    first = MultientryOrder("ABC1", "a1", "BTCUSDT", "Binance", "BUY", legs=[LegRecord(1, 1.0, 100.0, "market")])
    second = MultientryOrder("ABC1", "a2", "ETHUSDT", "Binance", "SELL")
    store.save_multientry_order(first)
    store.save_multientry_order(second)

    loaded = store.get_multientry_order("ABC1")
    assert loaded.alert_id == "a2"
    assert loaded.symbol == "ETHUSDT"
    assert store.get_multientry_order("missing") is None


def test_activating_credentials_deactivates_others(store, make_credentials) -> None:
    binance = make_credentials(id="c1", exchange="Binance")
    bybit = make_credentials(id="c2", exchange="Bybit")
    store.save_credentials(binance)
    store.save_credentials(bybit)

    active = [cred.id for cred in store.load_credentials() if cred.is_active]
    assert active == ["c2"]

    store.remove_credentials("c2")
    assert [cred.id for cred in store.load_credentials()] == ["c1"]


def test_trading_config_defaults_and_round_trip(store) -> None:
    assert store.load_trading_config() == TradingConfig()

    config = TradingConfig(mode="AUTO", test_mode=True, enabled_strategies=["intraday", "multientry"])
    store.save_trading_config(config)

    assert store.load_trading_config() == config


def test_json_store_survives_restart(workspace_tmp_path, make_alert) -> None:
    path = workspace_tmp_path / "state"
    order = MultientryOrder(
        "ABC1",
        "a1",
        "BTCUSDT",
        "Binance",
        "BUY",
        legs=[
            LegRecord(1, 1.0, 100.0, "market", status="filled", order_id="o1", filled_quantity=1.0),
            LegRecord(
                2,
                2.0,
                95.0,
                "limit",
                status="filled",
                order_id="o2",
                filled_quantity=0.5,
                remainder_open=True,
                raw_response='{"orderId":"o2","status":"PARTIALLY_FILLED"}',
            ),
        ],
    )
    first = JsonStateStore(path)
    first.append_alert(make_alert(id="a1", alert="L1,100:ID,ABC1"))
    first.save_multientry_order(order)

    second = JsonStateStore(path)
    assert second.get_alert("a1").alert == "L1,100:ID,ABC1"
    reloaded = second.get_multientry_order("ABC1")
    assert reloaded.leg(1).status == "filled"
    assert reloaded.leg(1).filled_quantity == 1.0
    assert reloaded.leg(2).remainder_open
    assert "PARTIALLY_FILLED" in reloaded.leg(2).raw_response
    assert reloaded.created_at == order.created_at


def test_json_store_tolerates_corrupt_file(workspace_tmp_path) -> None:
    path = workspace_tmp_path / "state"
    store = JsonStateStore(path)
    (path / "alerts.json").write_bytes(b"{not json")
    assert store.list_alerts() == []
