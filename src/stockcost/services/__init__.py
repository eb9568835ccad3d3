from .inventory_service import InventoryService
from .purchase_service import PurchaseService
from .payment_service import PaymentService
from .excel_service import ExcelService
from .operations_service import OperationsService

__all__ = [
    "InventoryService",
    "PurchaseService",
    "PaymentService",
    "ExcelService",
    "OperationsService",
]
