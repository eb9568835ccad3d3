from decimal import Decimal

import pytest
from hypothesis import given, strategies as st

from conftest import purchase
from stockcost.domain.costing import (
    average_unit_cost,
    convert_purchase,
    deplete_buckets,
    normalize_content,
    price_purchase,
    split_tax,
)
from stockcost.domain.errors import (
    InsufficientStockError,
    InvalidAmountError,
    InvalidQuantityError,
    InvalidRateError,
    ValidationError,
)
from stockcost.domain.numbers import tax_factor, to_decimal
from stockcost.domain.units import base_unit_of, from_base, to_base

quantities = st.decimals(min_value="0.0001", max_value="100000", places=4, allow_nan=False, allow_infinity=False)
costs = st.decimals(min_value="0", max_value="100000", places=6, allow_nan=False, allow_infinity=False)
rates = st.decimals(min_value="0", max_value="100", places=2, allow_nan=False, allow_infinity=False)


def test_packaged_purchase_multiplies_units_and_content():
    q = convert_purchase(3, True, 12, "355")
    assert q.total_storage_units == Decimal("36")
    assert q.total_base_content == Decimal("12780")
    assert q.stock_quantity("pieces") == Decimal("36")
    assert q.stock_quantity("content") == Decimal("12780")


def test_unpackaged_purchase_ignores_units_per_package():
    q = convert_purchase("2.5", False, 0, 1000)
    assert q.total_storage_units == Decimal("2.5")
    assert q.total_base_content == Decimal("2500.0")


@pytest.mark.parametrize(
    "args",
    [
        (0, False, 1, 1),
        (-1, False, 1, 1),
        (1, False, 1, 0),
        (1, True, 0, 1),
    ],
)
def test_convert_purchase_rejects_non_positive_inputs(args):
    with pytest.raises(InvalidQuantityError):
        convert_purchase(*args)


def test_floats_are_read_through_their_text():
    assert to_decimal(0.1) == Decimal("0.1")
    with pytest.raises(ValidationError):
        to_decimal(True)
    with pytest.raises(ValidationError):
        to_decimal("nan")


def test_split_tax_inclusive_and_exclusive():
    inclusive = split_tax("116", "16", True)
    assert inclusive.with_tax == Decimal("116")
    assert inclusive.without_tax == Decimal("100.000000")
    assert inclusive.tax_amount == Decimal("16.000000")

    exclusive = split_tax("100", "16", False)
    assert exclusive.with_tax == Decimal("116.000000")
    assert exclusive.without_tax == Decimal("100")


def test_split_tax_zero_rate_keeps_amount():
    split = split_tax("50", 0, True)
    assert split.with_tax == split.without_tax == Decimal("50")


def test_split_tax_validation_order():
    with pytest.raises(InvalidRateError):
        split_tax(0, -1, True)
    with pytest.raises(InvalidAmountError):
        split_tax(0, 16, True)


def test_first_stock_takes_incoming_cost():
    cost = average_unit_cost(0, 0, 500, "10", 16)
    assert cost.with_tax == Decimal("10.000000")
    assert cost.without_tax == Decimal("8.620690")


def test_weighted_average_over_existing_stock():
    cost = average_unit_cost(500, "10", 500, "12", 16)
    assert cost.with_tax == Decimal("11.000000")


def test_average_validation():
    with pytest.raises(InvalidQuantityError):
        average_unit_cost(-1, 1, 1, 1, 16)
    with pytest.raises(InvalidQuantityError):
        average_unit_cost(1, 1, 0, 1, 16)
    with pytest.raises(InvalidAmountError):
        average_unit_cost(1, -1, 1, 1, 16)
    with pytest.raises(InvalidRateError):
        average_unit_cost(1, 1, 1, 1, -16)


def test_depletion_drains_new_bucket_first():
    d = deplete_buckets(Decimal("500"), Decimal("500"), 700)
    assert (d.stock_old, d.stock_new) == (Decimal("300"), Decimal("0"))
    assert (d.from_new, d.from_old) == (Decimal("500"), Decimal("200"))

    d = deplete_buckets(Decimal("500"), Decimal("500"), 200)
    assert (d.stock_old, d.stock_new) == (Decimal("500"), Decimal("300"))


def test_depletion_rejects_more_than_available():
    with pytest.raises(InsufficientStockError) as exc:
        deplete_buckets(Decimal("1"), Decimal("2"), 4)
    assert exc.value.requested == Decimal("4")
    assert exc.value.available == Decimal("3")

    with pytest.raises(InvalidQuantityError):
        deplete_buckets(Decimal("1"), Decimal("2"), 0)


def test_price_purchase_per_piece_and_per_content():
    p = purchase(2, 232, includes_tax=True, is_packaged=True, units_per_package=Decimal("6"), content_per_unit=Decimal("500"))

    pieces = price_purchase(p, "pieces")
    assert pieces.stock_quantity == Decimal("12.0000")
    assert pieces.unit_cost.with_tax == Decimal("19.333333")
    assert pieces.cost_per_base_unit == Decimal("0.038667")

    content = price_purchase(p, "content")
    assert content.stock_quantity == Decimal("6000.0000")
    assert content.unit_cost.with_tax == Decimal("0.038667")
    assert content.totals.without_tax == Decimal("200.000000")


def test_units_convert_through_their_base():
    assert base_unit_of("kg") == "g"
    assert base_unit_of("Litros") == "ml"
    assert to_base(Decimal("1.5"), "kg") == Decimal("1500.0")
    assert from_base(Decimal("250"), "L") == Decimal("0.25")
    with pytest.raises(ValidationError):
        base_unit_of("furlong")


def test_normalize_content_expresses_kilos_in_grams():
    p = normalize_content(purchase(1, 100, content_per_unit=Decimal("2")), "kg", "g")
    assert p.content_per_unit == Decimal("2000")
    with pytest.raises(ValidationError):
        normalize_content(p, "ml", "g")


@given(qty=quantities, per_package=quantities, content=quantities, packaged=st.booleans())
def test_conversion_is_exact(qty, per_package, content, packaged):
    q = convert_purchase(qty, packaged, per_package, content)
    assert q.total_storage_units * content == q.total_base_content


@given(stock=quantities, old_cost=costs, incoming=quantities, new_cost=costs, rate=rates)
def test_average_stays_between_inputs(stock, old_cost, incoming, new_cost, rate):
    cost = average_unit_cost(stock, old_cost, incoming, new_cost, rate)
    assert min(old_cost, new_cost) <= cost.with_tax <= max(old_cost, new_cost)
    assert Decimal("0") <= cost.without_tax <= cost.with_tax


@given(old=quantities, new=quantities, data=st.data())
def test_depletion_never_goes_negative(old, new, data):
    qty = data.draw(st.decimals(min_value="0.0001", max_value=old + new, places=4))
    d = deplete_buckets(old, new, qty)
    assert d.stock_old >= 0 and d.stock_new >= 0
    assert d.stock_old + d.stock_new == old + new - qty
    if qty <= new:
        assert d.stock_old == old
    else:
        assert d.stock_new == 0


amounts = st.decimals(min_value="0.01", max_value="100000", places=2, allow_nan=False, allow_infinity=False)


@given(amount=amounts, rate=rates)
def test_tax_split_round_trips(amount, rate):
    tolerance = Decimal("0.0001")

    inclusive = split_tax(amount, rate, amount_includes_tax=True)
    assert inclusive.with_tax == amount
    assert abs(inclusive.without_tax * tax_factor(rate) - amount) <= tolerance

    exclusive = split_tax(amount, rate, amount_includes_tax=False)
    assert exclusive.without_tax == amount
    assert abs(exclusive.with_tax / tax_factor(rate) - amount) <= tolerance


@given(old_cost=costs, incoming=quantities, new_cost=costs, rate=rates)
def test_first_stock_takes_incoming_cost_for_any_quantity(old_cost, incoming, new_cost, rate):
    cost = average_unit_cost(0, old_cost, incoming, new_cost, rate)
    assert cost.with_tax == new_cost
    assert cost.without_tax <= cost.with_tax
