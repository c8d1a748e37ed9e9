import pytest

from pycalendarpricing.config import CalendarSettings, WeekendDiscount
from pycalendarpricing.engine import PriceEngine, apply_discount
from pycalendarpricing.exceptions import ValidationError
from pycalendarpricing.models import DateKey, DateRange, MonthKey, PriceStatus, SyncRecord

MARCH = MonthKey(2025, 3)


def _engine(*, weekend_percent: float = 0, today: DateKey = DateKey(2025, 3, 10)) -> PriceEngine:
    settings = CalendarSettings(
        weekend=WeekendDiscount(enabled=weekend_percent > 0, percent=weekend_percent)
    )
    return PriceEngine(settings, today=today)


@pytest.mark.parametrize(
    ("base", "percent", "expected"),
    [
        (1000, 20, 800),
        (1000, 150, 1500),
        (1000, -10, 1000),
        (1000, 100, 0),
        (999, 50, 500),
        (8000, 10, 7200),
    ],
)
def test_apply_discount(base, percent, expected) -> None:
    assert apply_discount(base, percent) == expected


def test_weekend_rule_in_fresh_month() -> None:
    engine = _engine(weekend_percent=10, today=DateKey(2025, 2, 1))
    saturday = engine.resolve_price(DateKey(2025, 3, 1))
    monday = engine.resolve_price(DateKey(2025, 3, 3))
    assert (saturday.price, saturday.status) == (7200, PriceStatus.WEEKEND_DISCOUNTED)
    assert (monday.price, monday.status) == (8000, PriceStatus.DEFAULT)


def test_resolve_price_is_pure() -> None:
    engine = _engine()
    engine.resolve_month(MARCH)
    assert engine.tables == {}
    assert not engine.blocked


def test_past_dates_resolve_to_zero() -> None:
    engine = _engine()
    engine.remote[DateKey(2025, 3, 9)] = 9000
    past = engine.resolve_price(DateKey(2025, 3, 9))
    today = engine.resolve_price(DateKey(2025, 3, 10))
    assert (past.price, past.status) == (0, PriceStatus.PAST)
    assert today.status is PriceStatus.DEFAULT


def test_remote_zero_blocks() -> None:
    engine = _engine()
    engine.remote[DateKey(2025, 3, 12)] = 0
    result = engine.resolve_price(DateKey(2025, 3, 12))
    assert (result.price, result.status, result.from_remote) == (0, PriceStatus.BLOCKED, True)


def test_local_block_overrides_remote_price() -> None:
    engine = _engine()
    engine.remote[DateKey(2025, 3, 12)] = 9000
    engine.blocked.add(DateKey(2025, 3, 12))
    assert engine.resolve_price(DateKey(2025, 3, 12)).status is PriceStatus.BLOCKED


def test_cached_zero_is_a_price_not_a_block() -> None:
    engine = _engine()
    engine.table(MARCH).set(DateKey(2025, 3, 12), 0)
    assert not engine.is_blocked(DateKey(2025, 3, 12))
    result = engine.resolve_price(DateKey(2025, 3, 12))
    assert (result.price, result.status) == (0, PriceStatus.DEFAULT)


def test_full_weekend_discount_is_reverted_when_disabled() -> None:
    engine = _engine()
    saturday = DateKey(2025, 3, 15)
    engine.set_weekend_discount(WeekendDiscount(enabled=True, percent=100))
    engine.ensure_base_prices(MARCH)

    assert engine.tables[MARCH].get(saturday) == 0
    assert not engine.is_blocked(saturday)
    result = engine.resolve_price(saturday)
    assert (result.price, result.status) == (0, PriceStatus.WEEKEND_DISCOUNTED)

    engine.set_weekend_discount(WeekendDiscount(enabled=False, percent=0))

    assert engine.tables[MARCH].get(saturday) == 8000
    result = engine.resolve_price(saturday)
    assert (result.price, result.status) == (8000, PriceStatus.DEFAULT)


def test_remote_price_beats_overlay_and_weekend() -> None:
    engine = _engine(weekend_percent=10)
    saturday = DateKey(2025, 3, 15)
    engine.remote[saturday] = 9000
    engine.overlay.push_range(DateRange(saturday, saturday))
    engine.overlay.apply_to_last_range(100, engine.today())
    result = engine.resolve_price(saturday)
    assert (result.price, result.status, result.from_remote) == (9000, PriceStatus.AVAILABLE, True)


def test_overlay_exclusion_and_discount() -> None:
    engine = _engine(weekend_percent=10)
    engine.overlay.push_range(DateRange(DateKey(2025, 3, 12), DateKey(2025, 3, 16)))
    engine.overlay.apply_to_last_range(6400, engine.today())
    engine.overlay.exclude(DateKey(2025, 3, 13))

    excluded = engine.resolve_price(DateKey(2025, 3, 13))
    discounted = engine.resolve_price(DateKey(2025, 3, 12))
    weekend_in_range = engine.resolve_price(DateKey(2025, 3, 15))
    weekend_outside = engine.resolve_price(DateKey(2025, 3, 22))

    assert (excluded.price, excluded.status) == (8000, PriceStatus.EXCLUDED)
    assert (discounted.price, discounted.status) == (6400, PriceStatus.DISCOUNTED)
    assert (weekend_in_range.price, weekend_in_range.status) == (6400, PriceStatus.DISCOUNTED)
    assert (weekend_outside.price, weekend_outside.status) == (
        7200,
        PriceStatus.WEEKEND_DISCOUNTED,
    )


def test_cached_price_used_for_default_status() -> None:
    engine = _engine()
    engine.table(MARCH).set(DateKey(2025, 3, 12), 5000)
    result = engine.resolve_price(DateKey(2025, 3, 12))
    assert (result.price, result.status) == (5000, PriceStatus.DEFAULT)


def test_ensure_base_prices_is_idempotent() -> None:
    engine = _engine(weekend_percent=10)
    engine.blocked.add(DateKey(2025, 3, 20))
    engine.table(MARCH).set(DateKey(2025, 3, 25), 4321)

    assert engine.ensure_base_prices(MARCH) is True
    table = engine.tables[MARCH]
    assert len(table) == 31
    assert table.get(DateKey(2025, 3, 9)) == 0
    assert table.get(DateKey(2025, 3, 12)) == 8000
    assert table.get(DateKey(2025, 3, 15)) == 7200
    assert table.get(DateKey(2025, 3, 20)) == 0
    assert table.get(DateKey(2025, 3, 25)) == 4321

    assert engine.ensure_base_prices(MARCH) is False
    assert len(table) == 31


def test_block_then_unblock() -> None:
    engine = _engine()
    engine.ensure_base_prices(MARCH)
    changed = engine.block_range(DateKey(2025, 3, 14), DateKey(2025, 3, 11))
    assert changed == [DateKey(2025, 3, day) for day in range(11, 15)]
    assert engine.tables[MARCH].get(DateKey(2025, 3, 12)) == 0

    assert engine.unblock_date(DateKey(2025, 3, 12)) is True
    assert DateKey(2025, 3, 12) not in engine.blocked
    result = engine.resolve_price(DateKey(2025, 3, 12))
    assert (result.price, result.status) == (8000, PriceStatus.DEFAULT)
    assert engine.resolve_price(DateKey(2025, 3, 11)).status is PriceStatus.BLOCKED
    assert engine.block_range(DateKey(2025, 3, 11), DateKey(2025, 3, 11)) == []


def test_block_range_across_months() -> None:
    engine = _engine()
    engine.block_range(DateKey(2025, 3, 30), DateKey(2025, 4, 2))
    assert engine.blocked.months() == [MonthKey(2025, 3), MonthKey(2025, 4)]
    assert engine.is_blocked(DateKey(2025, 4, 2))


def test_unblock_supersedes_remote_zero() -> None:
    engine = _engine()
    engine.adopt_remote([SyncRecord("1", DateKey(2025, 3, 12), 0)])
    assert engine.is_blocked(DateKey(2025, 3, 12))
    assert engine.unblock_date(DateKey(2025, 3, 12)) is True
    result = engine.resolve_price(DateKey(2025, 3, 12))
    assert (result.price, result.status, result.from_remote) == (8000, PriceStatus.DEFAULT, False)


def test_unblock_drops_positive_remote_price() -> None:
    engine = _engine()
    engine.adopt_remote([SyncRecord("42", DateKey(2025, 3, 12), 5000)])
    assert engine.block_date(DateKey(2025, 3, 12)) is True
    assert engine.resolve_price(DateKey(2025, 3, 12)).status is PriceStatus.BLOCKED

    assert engine.unblock_date(DateKey(2025, 3, 12)) is True

    assert DateKey(2025, 3, 12) not in engine.remote
    result = engine.resolve_price(DateKey(2025, 3, 12))
    assert (result.price, result.status, result.from_remote) == (8000, PriceStatus.DEFAULT, False)


def test_unblock_ignores_dates_that_are_not_blocked() -> None:
    engine = _engine()
    engine.adopt_remote([SyncRecord("42", DateKey(2025, 3, 12), 5000)])
    assert engine.unblock_date(DateKey(2025, 3, 12)) is False
    assert engine.resolve_price(DateKey(2025, 3, 12)).price == 5000


def test_set_price_supersedes_remote_record() -> None:
    engine = _engine()
    engine.adopt_remote([SyncRecord("1", DateKey(2025, 3, 12), 9000)])
    assert engine.set_price(DateKey(2025, 3, 12), 9500) is True
    result = engine.resolve_price(DateKey(2025, 3, 12))
    assert (result.price, result.status) == (9500, PriceStatus.DEFAULT)
    assert engine.set_price(DateKey(2025, 3, 12), 9500) is False
    with pytest.raises(ValidationError):
        engine.set_price(DateKey(2025, 3, 12), -1)


def test_set_default_cost_rewrites_local_records() -> None:
    engine = _engine(weekend_percent=10)
    engine.ensure_base_prices(MARCH)
    engine.remote[DateKey(2025, 3, 20)] = 5555
    engine.tables[MARCH].set(DateKey(2025, 3, 20), 5555)

    assert engine.set_default_cost(9000) is True
    table = engine.tables[MARCH]
    assert engine.default_cost() == 9000
    assert table.default_cost == 9000
    assert table.get(DateKey(2025, 3, 12)) == 9000
    assert table.get(DateKey(2025, 3, 15)) == 8100
    assert table.get(DateKey(2025, 3, 9)) == 0
    assert table.get(DateKey(2025, 3, 20)) == 5555

    assert engine.set_default_cost(9000) is False
    with pytest.raises(ValidationError):
        engine.set_default_cost(0)


def test_set_weekend_discount_rewrites_weekends_only() -> None:
    engine = _engine()
    engine.ensure_base_prices(MARCH)

    assert engine.set_weekend_discount(WeekendDiscount(enabled=True, percent=20)) is True
    table = engine.tables[MARCH]
    assert table.get(DateKey(2025, 3, 15)) == 6400
    assert table.get(DateKey(2025, 3, 8)) == 0
    assert table.get(DateKey(2025, 3, 12)) == 8000
    assert engine.resolve_price(DateKey(2025, 3, 15)).status is PriceStatus.WEEKEND_DISCOUNTED

    assert engine.set_weekend_discount(WeekendDiscount(enabled=True, percent=20)) is False
    engine.set_weekend_discount(WeekendDiscount())
    assert table.get(DateKey(2025, 3, 15)) == 8000


def test_snapshot_records_use_resolved_prices() -> None:
    engine = _engine()
    engine.ensure_base_prices(MARCH)
    engine.overlay.push_range(DateRange(DateKey(2025, 3, 12), DateKey(2025, 3, 13)))
    engine.overlay.apply_to_last_range(5000, engine.today())
    engine.block_date(DateKey(2025, 3, 20))

    snapshot = {record.date: record.price for record in engine.snapshot_records()}
    assert len(snapshot) == 31
    assert snapshot[DateKey(2025, 3, 12)] == 5000
    assert snapshot[DateKey(2025, 3, 13)] == 5000
    assert snapshot[DateKey(2025, 3, 14)] == 8000
    assert snapshot[DateKey(2025, 3, 20)] == 0
    assert snapshot[DateKey(2025, 3, 1)] == 0


def test_adopt_remote_replaces_state() -> None:
    engine = _engine()
    engine.ensure_base_prices(MARCH)
    engine.block_date(DateKey(2025, 3, 25))
    count = engine.adopt_remote(
        [
            SyncRecord("1", DateKey(2025, 4, 1), 9000),
            SyncRecord("1", DateKey(2025, 4, 2), 0),
        ]
    )
    assert count == 2
    assert list(engine.tables) == [MonthKey(2025, 4)]
    assert DateKey(2025, 3, 25) not in engine.blocked
    assert DateKey(2025, 4, 2) in engine.blocked
    assert engine.resolve_price(DateKey(2025, 4, 1)).status is PriceStatus.AVAILABLE


def test_clear_forgets_everything() -> None:
    engine = _engine()
    engine.ensure_base_prices(MARCH)
    engine.block_date(DateKey(2025, 3, 25))
    engine.overlay.push_range(DateRange(DateKey(2025, 3, 12), DateKey(2025, 3, 13)))
    engine.clear()
    assert engine.tables == {}
    assert not engine.blocked
    assert engine.remote == {}
    assert engine.overlay.ranges == []
