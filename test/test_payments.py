import logging
from decimal import Decimal

import pytest
from hypothesis import given, strategies as st

from stockcost.config import CostingSettings
from stockcost.domain.errors import InsufficientPaymentError, InvalidAmountError, InvalidRateError
from stockcost.domain.payments import (
    CommissionSettings,
    PaymentRequest,
    fill_remaining,
    split_payment,
    tender_summary,
)
from stockcost.services.payment_service import PaymentService

COMMISSION_ON = CommissionSettings(
    enabled=True,
    rate_percent=Decimal("3.5"),
    terminal_charges_tax=True,
    tax_rate_percent=Decimal("16"),
)


def test_split_payment_with_card_commission():
    b = split_payment(
        PaymentRequest(total_owed=Decimal("237.50"), cash_amount=Decimal("100"), card_amount=Decimal("150")),
        COMMISSION_ON,
    )
    assert not b.simple_cash
    assert b.total_paid == Decimal("250")
    assert b.commission == Decimal("5.25")
    assert b.commission_tax == Decimal("0.84")
    assert b.change == Decimal("12.50")
    assert b.net_received == Decimal("243.91")
    assert b.confirmable


def test_simple_cash_gives_change():
    b = split_payment(PaymentRequest(total_owed=Decimal("80"), cash_received=Decimal("100")), COMMISSION_ON)
    assert b.simple_cash
    assert b.total_paid == Decimal("100")
    assert b.change == Decimal("20")
    assert b.commission == 0
    assert tender_summary(b) == "Cash received: 100.00 | Change: 20.00"


def test_commission_without_terminal_tax_and_disabled():
    request = PaymentRequest(total_owed=Decimal("100"), card_amount=Decimal("100"))

    no_tax = split_payment(request, CommissionSettings(enabled=True, rate_percent=Decimal("3.5"), terminal_charges_tax=False))
    assert no_tax.commission == Decimal("3.50")
    assert no_tax.commission_tax == 0

    disabled = split_payment(request, CommissionSettings(enabled=False))
    assert disabled.commission == 0
    assert disabled.net_received == Decimal("100")


def test_one_cent_short_is_not_confirmable():
    b = split_payment(PaymentRequest(total_owed=Decimal("100.00"), cash_amount=Decimal("99.99")), CommissionSettings())
    assert not b.confirmable
    assert b.shortfall == Decimal("0.01")

    exact = split_payment(PaymentRequest(total_owed=Decimal("100.00"), transfer_amount=Decimal("100.00")), CommissionSettings())
    assert exact.confirmable
    assert exact.change == 0


def test_invalid_payment_inputs():
    with pytest.raises(InvalidAmountError):
        split_payment(PaymentRequest(total_owed=Decimal("0")), CommissionSettings())
    with pytest.raises(InvalidAmountError):
        split_payment(PaymentRequest(total_owed=Decimal("10"), card_amount=Decimal("-1")), CommissionSettings())
    with pytest.raises(InvalidRateError):
        split_payment(
            PaymentRequest(total_owed=Decimal("10"), card_amount=Decimal("10")),
            CommissionSettings(enabled=True, rate_percent=Decimal("-1")),
        )


def test_fill_remaining():
    assert fill_remaining(Decimal("237.50"), Decimal("100"), Decimal("50")) == Decimal("87.50")
    assert fill_remaining(Decimal("10"), Decimal("20")) == 0


def test_effective_rate_includes_terminal_tax():
    assert COMMISSION_ON.effective_rate_percent == Decimal("4.060")
    assert CommissionSettings().effective_rate_percent == 0


def test_service_confirms_and_logs(caplog):
    service = PaymentService(CostingSettings(commission_enabled=True))
    request = PaymentRequest(total_owed=Decimal("237.50"), cash_amount=Decimal("100"), card_amount=Decimal("150"))

    with caplog.at_level(logging.INFO, logger="stockcost.payments"):
        breakdown, summary = service.confirm(request)

    assert breakdown.net_received == Decimal("243.91")
    assert summary == "Cash: 100.00 | Card: 150.00 | Commission: 5.25 | Commission tax: 0.84 | Change: 12.50"
    assert any("payment_confirmed" in r.getMessage() for r in caplog.records)


def test_service_rejects_short_payment():
    service = PaymentService()
    with pytest.raises(InsufficientPaymentError) as exc:
        service.confirm(PaymentRequest(total_owed=Decimal("50"), card_amount=Decimal("20"), transfer_amount=Decimal("10")))
    assert exc.value.shortfall == Decimal("20")


tenders = st.decimals(min_value="0", max_value="10000", places=2)


@given(owed=st.decimals(min_value="0.01", max_value="10000", places=2), cash=tenders, card=tenders, transfer=tenders)
def test_breakdown_is_consistent(owed, cash, card, transfer):
    b = split_payment(
        PaymentRequest(total_owed=owed, cash_amount=cash, card_amount=card, transfer_amount=transfer),
        COMMISSION_ON,
    )
    assert b.total_paid == cash + card + transfer
    assert b.net_received == b.total_paid - b.commission - b.commission_tax
    assert b.change >= 0 and b.shortfall >= 0
    assert b.confirmable == (b.total_paid >= owed)
