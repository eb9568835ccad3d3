"""Pure costing rules: unit conversion, tax split, weighted average, bucket depletion.

Every function here is side-effect free and works on ``Decimal`` values.
Callers persist the results.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal

from stockcost.domain.errors import (
    InsufficientStockError,
    InvalidAmountError,
    InvalidQuantityError,
    InvalidRateError,
    ValidationError,
)
from stockcost.domain.models import STORAGE_CONTENT, STORAGE_MODES, STORAGE_PIECES, PurchaseInput
from stockcost.domain.units import from_base, get_unit, to_base
from stockcost.domain.numbers import (
    ZERO,
    quantize_cost,
    quantize_qty,
    strip_tax,
    tax_factor,
    to_decimal,
)


@dataclass(frozen=True)
class PurchaseQuantities:
    total_storage_units: Decimal
    total_base_content: Decimal

    def stock_quantity(self, storage_mode: str) -> Decimal:
        if storage_mode == STORAGE_PIECES:
            return self.total_storage_units
        if storage_mode == STORAGE_CONTENT:
            return self.total_base_content
        raise ValidationError(f"Unknown storage mode: {storage_mode!r}")


@dataclass(frozen=True)
class TaxSplit:
    with_tax: Decimal
    without_tax: Decimal

    @property
    def tax_amount(self) -> Decimal:
        return self.with_tax - self.without_tax


@dataclass(frozen=True)
class UnitCost:
    with_tax: Decimal
    without_tax: Decimal


@dataclass(frozen=True)
class PricedPurchase:
    quantities: PurchaseQuantities
    stock_quantity: Decimal
    totals: TaxSplit
    unit_cost: UnitCost
    cost_per_base_unit: Decimal
    tax_rate: Decimal


@dataclass(frozen=True)
class BucketDepletion:
    stock_old: Decimal
    stock_new: Decimal
    from_new: Decimal
    from_old: Decimal


def _require_rate(tax_rate_percent: object) -> Decimal:
    rate = to_decimal(tax_rate_percent, "tax rate")
    if rate < 0:
        raise InvalidRateError(f"Tax rate must be >= 0. Received: {rate}")
    return rate


def convert_purchase(
    quantity_purchased: object,
    is_packaged: bool,
    units_per_package: object,
    content_per_unit: object,
) -> PurchaseQuantities:
    qty = to_decimal(quantity_purchased, "quantity")
    content = to_decimal(content_per_unit, "content per unit")
    if qty <= 0:
        raise InvalidQuantityError("Quantity purchased must be > 0.")
    if content <= 0:
        raise InvalidQuantityError("Content per unit must be > 0.")

    if is_packaged:
        per_package = to_decimal(units_per_package, "units per package")
        if per_package <= 0:
            raise InvalidQuantityError("Units per package must be > 0.")
        storage_units = qty * per_package
    else:
        storage_units = qty

    return PurchaseQuantities(
        total_storage_units=storage_units,
        total_base_content=storage_units * content,
    )


def split_tax(amount: object, tax_rate_percent: object, amount_includes_tax: bool) -> TaxSplit:
    rate = _require_rate(tax_rate_percent)
    value = to_decimal(amount, "amount")
    if value <= 0:
        raise InvalidAmountError("Amount must be > 0.")

    if amount_includes_tax:
        return TaxSplit(with_tax=value, without_tax=quantize_cost(value / tax_factor(rate)))
    return TaxSplit(with_tax=quantize_cost(value * tax_factor(rate)), without_tax=value)


def average_unit_cost(
    existing_stock: object,
    existing_unit_cost_with_tax: object,
    incoming_quantity: object,
    incoming_unit_cost_with_tax: object,
    tax_rate_percent: object,
) -> UnitCost:
    """Weighted average of per-storage-unit costs.

    With no existing stock the incoming cost is taken as is; averaging against an
    empty bucket would pull the cost toward zero.
    """
    rate = _require_rate(tax_rate_percent)
    stock = to_decimal(existing_stock, "existing stock")
    old_cost = to_decimal(existing_unit_cost_with_tax, "existing unit cost")
    incoming = to_decimal(incoming_quantity, "incoming quantity")
    new_cost = to_decimal(incoming_unit_cost_with_tax, "incoming unit cost")

    if stock < 0:
        raise InvalidQuantityError("Existing stock must be >= 0.")
    if incoming <= 0:
        raise InvalidQuantityError("Incoming quantity must be > 0.")
    if old_cost < 0 or new_cost < 0:
        raise InvalidAmountError("Unit costs must be >= 0.")

    if stock == 0:
        averaged = quantize_cost(new_cost)
    else:
        averaged = quantize_cost((stock * old_cost + incoming * new_cost) / (stock + incoming))

    return UnitCost(with_tax=averaged, without_tax=strip_tax(averaged, rate))


def deplete_buckets(stock_old: Decimal, stock_new: Decimal, quantity: object) -> BucketDepletion:
    """Take ``quantity`` out of the newest bucket first, the remainder from the old one."""
    qty = to_decimal(quantity, "quantity")
    if qty <= 0:
        raise InvalidQuantityError("Quantity to withdraw must be > 0.")
    available = stock_old + stock_new
    if qty > available:
        raise InsufficientStockError(requested=qty, available=available)

    from_new = min(qty, stock_new)
    from_old = qty - from_new
    return BucketDepletion(
        stock_old=stock_old - from_old,
        stock_new=stock_new - from_new,
        from_new=from_new,
        from_old=from_old,
    )


def price_purchase(purchase: PurchaseInput, storage_mode: str) -> PricedPurchase:
    if storage_mode not in STORAGE_MODES:
        raise ValidationError(f"Unknown storage mode: {storage_mode!r}")

    quantities = convert_purchase(
        purchase.quantity,
        purchase.is_packaged,
        purchase.units_per_package,
        purchase.content_per_unit,
    )
    totals = split_tax(purchase.total_price, purchase.tax_rate, purchase.price_includes_tax)
    rate = _require_rate(purchase.tax_rate)

    stock_qty = quantize_qty(quantities.stock_quantity(storage_mode))
    if stock_qty <= ZERO:
        raise InvalidQuantityError("Purchase resolves to a zero stock quantity.")

    with_tax = quantize_cost(totals.with_tax / stock_qty)
    return PricedPurchase(
        quantities=quantities,
        stock_quantity=stock_qty,
        totals=totals,
        unit_cost=UnitCost(with_tax=with_tax, without_tax=strip_tax(with_tax, rate)),
        cost_per_base_unit=quantize_cost(totals.with_tax / quantities.total_base_content),
        tax_rate=rate,
    )


def normalize_content(purchase: PurchaseInput, content_unit: str | None, base_unit: str) -> PurchaseInput:
    """Express ``content_per_unit`` in ``base_unit`` (a purchase typed in kg for a gram material)."""
    if not content_unit:
        return purchase
    info = get_unit(content_unit)
    if info.base_symbol != get_unit(base_unit).base_symbol:
        raise ValidationError(f"Unit {content_unit!r} cannot be converted to {base_unit!r}.")
    content = to_base(to_decimal(purchase.content_per_unit, "content per unit"), content_unit)
    return replace(purchase, content_per_unit=from_base(content, base_unit))
