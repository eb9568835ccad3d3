from __future__ import annotations

import logging

from stockcost.config import CostingSettings
from stockcost.domain.errors import InsufficientPaymentError
from stockcost.domain.payments import PaymentBreakdown, PaymentRequest, split_payment, tender_summary
from stockcost.logging_config import PAYMENTS_LOGGER

log = logging.getLogger(PAYMENTS_LOGGER)


class PaymentService:
    def __init__(self, settings: CostingSettings | None = None):
        self.settings = settings or CostingSettings()

    def preview(self, request: PaymentRequest) -> PaymentBreakdown:
        return split_payment(request, self.settings.commission())

    def confirm(self, request: PaymentRequest) -> tuple[PaymentBreakdown, str]:
        breakdown = self.preview(request)
        if not breakdown.confirmable:
            raise InsufficientPaymentError(breakdown.total_owed, breakdown.total_paid, breakdown.shortfall)

        summary = tender_summary(breakdown)
        log.info(
            "payment_confirmed owed=%s paid=%s commission=%s commission_tax=%s net=%s change=%s",
            breakdown.total_owed, breakdown.total_paid, breakdown.commission,
            breakdown.commission_tax, breakdown.net_received, breakdown.change,
        )
        return breakdown, summary
