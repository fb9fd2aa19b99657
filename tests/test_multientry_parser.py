import pytest

from src.errors import ParseError
from src.strategy.multientry import is_close_alert, parse_close_alert, parse_multientry_alert


def test_four_level_alert_sizes_each_leg() -> None:
    plan = parse_multientry_alert("L1,100:L2,95:L3,90:L4,85:ID,ABC1", base_amount=100)

    assert plan.correlation_id == "ABC1"
    assert [level.name for level in plan.levels] == ["L1", "L2", "L3", "L4"]
    quantities = [level.quantity for level in plan.levels]
    assert quantities == pytest.approx([1.0, 200 / 95, 300 / 90, 400 / 85])
    assert quantities[1] == pytest.approx(2.105, abs=1e-3)
    assert quantities[2] == pytest.approx(3.333, abs=1e-3)
    assert quantities[3] == pytest.approx(4.706, abs=1e-3)
    assert [level.order_kind for level in plan.levels] == ["market", "limit", "limit", "limit"]


def test_token_order_does_not_matter() -> None:
    ordered = parse_multientry_alert("L1,100:L2,95:L3,90:ID,X9", base_amount=50)
    shuffled = parse_multientry_alert("ID,X9:L3,90:L1,100:L2,95", base_amount=50)
    assert ordered == shuffled


def test_unknown_keys_are_ignored_and_partial_levels_allowed() -> None:
    plan = parse_multientry_alert("TF,15m:L1,100:L3,90:ID,A", base_amount=100)
    assert [level.level for level in plan.levels] == [1, 3]
    assert plan.levels[1].quantity == pytest.approx(300 / 90)


@pytest.mark.parametrize(
    "text",
    [
        "L1,100:L2,95",  # no ID
        "ID,ABC1",  # no levels
        "L1,abc:ID,ABC1",
        "L1,0:ID,ABC1",
        "L1,-5:ID,ABC1",
        "",
    ],
)
def test_malformed_multientry_alerts(text: str) -> None:
    with pytest.raises(ParseError):
        parse_multientry_alert(text, base_amount=100)


def test_close_alerts() -> None:
    take_profit = parse_close_alert("TP:ID,ABC1")
    assert take_profit.reason == "take_profit"
    assert take_profit.correlation_id == "ABC1"
    assert parse_close_alert("sl:ID,ABC1").reason == "stop_loss"

    assert is_close_alert("TP:ID,ABC1")
    assert not is_close_alert("L1,100:ID,ABC1")
    assert not is_close_alert(None)


@pytest.mark.parametrize("text", ["TP", "XX:ID,ABC1", "TP:L1,100", "L1,100:ID,A"])
def test_malformed_close_alerts(text: str) -> None:
    with pytest.raises(ParseError):
        parse_close_alert(text)
