from __future__ import annotations

from decimal import Decimal


class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class InvalidQuantityError(ValidationError):
    pass


class InvalidAmountError(ValidationError):
    pass


class InvalidRateError(ValidationError):
    pass


class NotFoundError(AppError):
    pass


class InsufficientStockError(AppError):
    def __init__(self, requested: Decimal, available: Decimal):
        self.requested = requested
        self.available = available
        super().__init__(f"Not enough stock. Requested: {requested}, available: {available}")


class InsufficientPaymentError(AppError):
    def __init__(self, total_owed: Decimal, total_paid: Decimal, shortfall: Decimal):
        self.total_owed = total_owed
        self.total_paid = total_paid
        self.shortfall = shortfall
        super().__init__(f"Payment is insufficient. Owed: {total_owed}, paid: {total_paid}, missing: {shortfall}")


class ReconciliationViolationError(AppError):
    """Ledger and stock disagree. Never repaired automatically."""

    def __init__(self, material_id: int, ledger_total: Decimal, stock_total: Decimal):
        self.material_id = material_id
        self.ledger_total = ledger_total
        self.stock_total = stock_total
        super().__init__(
            f"Ledger does not reconcile for material {material_id}: "
            f"ledger={ledger_total} stock={stock_total}"
        )
