from decimal import Decimal

import pytest

from milk_center.domain.errors import RateNotFound
from milk_center.domain.models import FatRate
from milk_center.domain.rates import (
    RateTable,
    as_decimal,
    compute_amount,
    detect_manual_edit,
    format_amount,
    preview_rate,
    resolve_exact,
    resolve_interpolated,
)


def make_table() -> RateTable:
    return RateTable.from_pairs({"3.0": "30", "4.1": "45.5", "5.0": "50"})


def test_exact_match_returns_configured_rate():
    table = make_table()

    assert resolve_exact(Decimal("4.1"), table) == Decimal("45.5")
    assert resolve_exact("4.10", table) == Decimal("45.5")
    assert resolve_exact(4.1, table) == Decimal("45.5")


def test_exact_resolution_never_interpolates():
    with pytest.raises(RateNotFound) as excinfo:
        resolve_exact("4.5", make_table())

    assert excinfo.value.fat_percentage == Decimal("4.5")
    assert "Please configure this exact fat rate first" in excinfo.value.message
    assert "4.5%" in excinfo.value.message


def test_preview_rate_is_zero_when_missing():
    assert preview_rate("4.5", make_table()) == Decimal("0")
    assert preview_rate("5.0", make_table()) == Decimal("50")


def test_interpolated_prefers_exact_match_and_keeps_decimals():
    assert resolve_interpolated("4.1", make_table()) == Decimal("45.5")


def test_interpolated_rounds_half_up_to_whole_number():
    table = RateTable.from_pairs({"3": "30", "4": "35"})

    assert resolve_interpolated("3.5", table) == Decimal("33")
    assert resolve_interpolated("3.2", table) == Decimal("31")


def test_interpolated_clamps_outside_range():
    table = make_table()

    assert resolve_interpolated("1.0", table) == Decimal("30")
    assert resolve_interpolated("9.0", table) == Decimal("50")


def test_interpolated_is_monotonic_for_increasing_rates():
    table = RateTable.from_pairs({"3.0": "28", "3.5": "31", "4.2": "39", "6.0": "52"})
    fats = [Decimal("2.5") + Decimal("0.1") * step for step in range(40)]
    rates = [resolve_interpolated(fat, table) for fat in fats]

    assert rates == sorted(rates)


def test_empty_table_resolves_to_zero():
    assert resolve_interpolated("4.0", RateTable()) == Decimal("0")


def test_table_stays_sorted_and_unique():
    table = RateTable()
    table.upsert(FatRate(Decimal("5.0"), Decimal("50")))
    table.upsert(FatRate(Decimal("3.0"), Decimal("30")))
    replaced = table.upsert(FatRate(Decimal("5.00"), Decimal("55")))

    assert replaced is True
    assert [r.fat_percentage for r in table] == [Decimal("3.0"), Decimal("5.0")]
    assert table.get("5") == FatRate(Decimal("5.00"), Decimal("55"))

    table.replace("3.0", FatRate(Decimal("6.0"), Decimal("60")))
    assert [r.fat_percentage for r in table] == [Decimal("5.0"), Decimal("6.0")]
    assert table.remove("6.0") is True
    assert table.remove("6.0") is False
    assert table.to_payload() == [{"fatPercentage": 5.0, "rate": 55.0}]


def test_formatted_auto_amount_is_not_a_manual_edit():
    amount = compute_amount("10.5", "45")

    assert format_amount(amount) == "472.50"
    assert detect_manual_edit(format_amount(amount), "10.5", "45") is False


def test_manual_edit_tolerance_boundaries():
    assert detect_manual_edit("472.52", "10.5", "45") is True
    assert detect_manual_edit("472.505", "10.5", "45") is False
    assert detect_manual_edit("472.51", "10.5", "45") is False
    assert detect_manual_edit("472.48", "10.5", "45") is True


@pytest.mark.parametrize("text", ["nan", "sNaN", "inf", "-Infinity"])
def test_non_finite_input_is_not_a_number(text):
    with pytest.raises(ValueError):
        as_decimal(text)
    with pytest.raises(ValueError):
        resolve_interpolated(text, make_table())


def test_float_infinity_is_rejected():
    with pytest.raises(ValueError):
        as_decimal(float("inf"))
