from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from stockcost.domain.numbers import ZERO, quantize_cost, strip_tax

STORAGE_PIECES = "pieces"
STORAGE_CONTENT = "content"
STORAGE_MODES = (STORAGE_PIECES, STORAGE_CONTENT)

MOVEMENT_ENTRY = "entry"
MOVEMENT_EXIT = "exit"
MOVEMENT_EDIT = "edit"

REASON_CREATION = "creation"
REASON_DELETION = "deletion"


@dataclass(frozen=True)
class Material:
    id: int
    name: str
    category: str
    storage_mode: str
    storage_unit: str
    base_unit: str
    conversion_factor: Decimal
    stock_old: Decimal
    stock_new: Decimal
    unit_cost_with_tax: Decimal
    tax_rate: Decimal
    low_stock_threshold: Decimal = ZERO
    supplier: str = ""
    barcode: str = ""
    active: int = 1
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    deleted_at: Optional[str] = None
    deleted_by: Optional[str] = None
    deletion_reason: Optional[str] = None

    @property
    def total_stock(self) -> Decimal:
        return self.stock_old + self.stock_new

    @property
    def unit_cost_without_tax(self) -> Decimal:
        return strip_tax(self.unit_cost_with_tax, self.tax_rate)

    @property
    def unit_cost_per_base_unit(self) -> Decimal:
        if self.conversion_factor <= 0:
            return ZERO
        return quantize_cost(self.unit_cost_with_tax / self.conversion_factor)

    @property
    def value_with_tax(self) -> Decimal:
        return self.total_stock * self.unit_cost_with_tax

    @property
    def value_without_tax(self) -> Decimal:
        return self.total_stock * self.unit_cost_without_tax

    @property
    def is_depleted(self) -> bool:
        return self.total_stock == 0

    @property
    def is_low_stock(self) -> bool:
        return self.low_stock_threshold > 0 and self.total_stock <= self.low_stock_threshold


@dataclass(frozen=True)
class Movement:
    material_id: int
    movement_type: str
    quantity: Decimal
    unit_cost_with_tax: Decimal
    tax_rate: Decimal
    storage_unit: str
    actor: str
    reason: str
    stock_after: Decimal
    datetime: str
    id: Optional[int] = field(default=None, compare=False)

    @property
    def unit_cost_without_tax(self) -> Decimal:
        return strip_tax(self.unit_cost_with_tax, self.tax_rate)

    @property
    def signed_quantity(self) -> Decimal:
        if self.movement_type == MOVEMENT_ENTRY:
            return self.quantity
        if self.movement_type == MOVEMENT_EXIT:
            return -self.quantity
        return ZERO


@dataclass(frozen=True)
class PurchaseInput:
    quantity: Decimal
    total_price: Decimal
    tax_rate: Decimal
    price_includes_tax: bool
    is_packaged: bool = False
    units_per_package: Decimal = Decimal("1")
    content_per_unit: Decimal = Decimal("1")


@dataclass(frozen=True)
class WithdrawalRequest:
    quantity: Decimal
    reason: str
