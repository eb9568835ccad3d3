from .models import Material, Movement, PurchaseInput, WithdrawalRequest
from .errors import (
    InsufficientPaymentError,
    InsufficientStockError,
    InvalidAmountError,
    InvalidQuantityError,
    InvalidRateError,
    NotFoundError,
    ReconciliationViolationError,
    ValidationError,
)

__all__ = [
    "Material",
    "Movement",
    "PurchaseInput",
    "WithdrawalRequest",
    "ValidationError",
    "InvalidQuantityError",
    "InvalidAmountError",
    "InvalidRateError",
    "NotFoundError",
    "InsufficientStockError",
    "InsufficientPaymentError",
    "ReconciliationViolationError",
]
