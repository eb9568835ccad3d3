from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from stockcost.domain.errors import InvalidQuantityError, ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Fractional digits kept inside the ledger. Display rounding happens in to_money only.
QTY_PLACES = Decimal("0.0001")
COST_PLACES = Decimal("0.000001")
MONEY_PLACES = Decimal("0.01")


def to_decimal(value: object, field: str = "value") -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValidationError(f"{field} must be a number.")
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValidationError(f"{field} must be a number. Received: {value!r}") from e
    else:
        raise ValidationError(f"{field} must be a number. Received: {value!r}")
    if not result.is_finite():
        raise ValidationError(f"{field} must be finite. Received: {value!r}")
    return result


def quantize_qty(value: Decimal) -> Decimal:
    return value.quantize(QTY_PLACES, rounding=ROUND_HALF_UP)


def quantize_cost(value: Decimal) -> Decimal:
    return value.quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def to_money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def tax_factor(tax_rate_percent: Decimal) -> Decimal:
    return Decimal("1") + tax_rate_percent / HUNDRED


def strip_tax(amount_with_tax: Decimal, tax_rate_percent: Decimal) -> Decimal:
    return quantize_cost(amount_with_tax / tax_factor(tax_rate_percent))


def exact_qty(value: Decimal, field: str = "quantity") -> Decimal:
    """Reject quantities finer than QTY_PLACES instead of rounding them away."""
    if value != quantize_qty(value):
        raise InvalidQuantityError(f"{field} supports at most 4 decimal places. Received: {value}")
    return value
