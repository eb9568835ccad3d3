from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from stockcost.domain.errors import InvalidAmountError, InvalidRateError
from stockcost.domain.numbers import HUNDRED, MONEY_PLACES, ZERO, to_decimal, to_money

# Shortfalls below one cent are rounding noise, a full cent is not.
TOLERANCE = MONEY_PLACES


@dataclass(frozen=True)
class CommissionSettings:
    enabled: bool = False
    rate_percent: Decimal = Decimal("3.5")
    terminal_charges_tax: bool = True
    tax_rate_percent: Decimal = Decimal("16")

    @property
    def effective_rate_percent(self) -> Decimal:
        if not self.enabled:
            return ZERO
        if self.terminal_charges_tax:
            return self.rate_percent * (1 + self.tax_rate_percent / HUNDRED)
        return self.rate_percent


@dataclass(frozen=True)
class PaymentRequest:
    total_owed: Decimal
    cash_received: Decimal = ZERO
    cash_amount: Decimal = ZERO
    card_amount: Decimal = ZERO
    transfer_amount: Decimal = ZERO


@dataclass(frozen=True)
class PaymentBreakdown:
    total_owed: Decimal
    simple_cash: bool
    cash: Decimal
    card: Decimal
    transfer: Decimal
    total_paid: Decimal
    commission: Decimal
    commission_tax: Decimal
    net_received: Decimal
    change: Decimal
    shortfall: Decimal
    confirmable: bool


def _non_negative(value: object, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise InvalidAmountError(f"{field} must be >= 0.")
    return amount


def _validate_commission(settings: CommissionSettings) -> None:
    if to_decimal(settings.rate_percent, "commission rate") < 0:
        raise InvalidRateError("Commission rate must be >= 0.")
    if to_decimal(settings.tax_rate_percent, "tax rate") < 0:
        raise InvalidRateError("Tax rate must be >= 0.")


def split_payment(request: PaymentRequest, commission: CommissionSettings) -> PaymentBreakdown:
    owed = to_decimal(request.total_owed, "total owed")
    if owed <= 0:
        raise InvalidAmountError("Total owed must be > 0.")
    received = _non_negative(request.cash_received, "cash received")
    cash = _non_negative(request.cash_amount, "cash")
    card = _non_negative(request.card_amount, "card")
    transfer = _non_negative(request.transfer_amount, "transfer")
    _validate_commission(commission)

    simple = received > 0 and cash == 0 and card == 0 and transfer == 0
    total_paid = received if simple else cash + card + transfer

    fee = ZERO
    fee_tax = ZERO
    if commission.enabled:
        fee = to_money(card * to_decimal(commission.rate_percent) / HUNDRED)
        if commission.terminal_charges_tax:
            fee_tax = to_money(fee * to_decimal(commission.tax_rate_percent) / HUNDRED)

    return PaymentBreakdown(
        total_owed=owed,
        simple_cash=simple,
        cash=received if simple else cash,
        card=card,
        transfer=transfer,
        total_paid=total_paid,
        commission=fee,
        commission_tax=fee_tax,
        net_received=total_paid - fee - fee_tax,
        change=max(ZERO, total_paid - owed),
        shortfall=max(ZERO, owed - total_paid),
        confirmable=(owed - total_paid) < TOLERANCE,
    )


def fill_remaining(total_owed: object, *other_tenders: object) -> Decimal:
    """Amount a third tender needs so the tenders add up to the total."""
    owed = to_decimal(total_owed, "total owed")
    others = sum((_non_negative(v, "tender") for v in other_tenders), ZERO)
    return max(ZERO, owed - others)


def tender_summary(breakdown: PaymentBreakdown) -> str:
    if breakdown.simple_cash:
        text = f"Cash received: {to_money(breakdown.cash)}"
        if breakdown.change > 0:
            text += f" | Change: {to_money(breakdown.change)}"
        return text

    parts = []
    if breakdown.cash > 0:
        parts.append(f"Cash: {to_money(breakdown.cash)}")
    if breakdown.card > 0:
        parts.append(f"Card: {to_money(breakdown.card)}")
    if breakdown.transfer > 0:
        parts.append(f"Transfer: {to_money(breakdown.transfer)}")
    if breakdown.commission > 0:
        parts.append(f"Commission: {breakdown.commission}")
    if breakdown.commission_tax > 0:
        parts.append(f"Commission tax: {breakdown.commission_tax}")
    if breakdown.change > 0:
        parts.append(f"Change: {to_money(breakdown.change)}")
    return " | ".join(parts)
