from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional

from stockcost.domain.costing import average_unit_cost, deplete_buckets
from stockcost.domain.errors import (
    InvalidQuantityError,
    ReconciliationViolationError,
    ValidationError,
)
from stockcost.domain.models import (
    MOVEMENT_EDIT,
    MOVEMENT_ENTRY,
    MOVEMENT_EXIT,
    Material,
    Movement,
)
from stockcost.domain.numbers import ZERO, exact_qty, quantize_cost, quantize_qty, to_decimal

EDITABLE_FIELDS = ("name", "category", "supplier", "barcode", "low_stock_threshold")


def now_iso() -> str:
    return datetime.now().replace(microsecond=0).isoformat(sep=" ")


def ledger_total(movements: Iterable[Movement]) -> Decimal:
    return sum((m.signed_quantity for m in movements), ZERO)


def check_reconciliation(material: Material, movements: Iterable[Movement]) -> None:
    total = ledger_total(movements)
    if total != material.total_stock:
        raise ReconciliationViolationError(material.id, total, material.total_stock)


class StockLedger:
    """Two-bucket stock of one material plus the movements it produced.

    Wraps a snapshot loaded under the caller's write lock. Buckets and cost are
    only changed through ``record_entry``, ``record_withdrawal`` and
    ``record_edit``; ``snapshot()`` and ``pending_movements`` are what the
    caller persists, together, in one transaction.
    """

    def __init__(self, material: Material, clock: Optional[Callable[[], str]] = None):
        if material.stock_old < 0 or material.stock_new < 0:
            raise ValidationError(f"Material {material.id} has a negative stock bucket.")
        self._material = material
        self._stock_old = material.stock_old
        self._stock_new = material.stock_new
        self._unit_cost_with_tax = material.unit_cost_with_tax
        self._tax_rate = material.tax_rate
        self._details: dict[str, object] = {}
        self._deactivation: dict[str, object] = {}
        self._pending: list[Movement] = []
        self._clock = clock or now_iso

    @property
    def material_id(self) -> int:
        return self._material.id

    @property
    def stock_old(self) -> Decimal:
        return self._stock_old

    @property
    def stock_new(self) -> Decimal:
        return self._stock_new

    @property
    def total_stock(self) -> Decimal:
        return self._stock_old + self._stock_new

    @property
    def pending_movements(self) -> tuple[Movement, ...]:
        return tuple(self._pending)

    def snapshot(self) -> Material:
        return replace(
            self._material,
            stock_old=self._stock_old,
            stock_new=self._stock_new,
            unit_cost_with_tax=self._unit_cost_with_tax,
            tax_rate=self._tax_rate,
            **self._details,
            **self._deactivation,
        )

    def _append(self, movement_type: str, quantity: Decimal, unit_cost: Decimal, actor: str, reason: str) -> Movement:
        movement = Movement(
            material_id=self._material.id,
            movement_type=movement_type,
            quantity=quantity,
            unit_cost_with_tax=unit_cost,
            tax_rate=self._tax_rate,
            storage_unit=self._material.storage_unit,
            actor=actor,
            reason=reason,
            stock_after=self.total_stock,
            datetime=self._clock(),
        )
        self._pending.append(movement)
        return movement

    def record_entry(
        self,
        quantity: object,
        unit_cost_with_tax: object,
        actor: str,
        reason: str,
        tax_rate: object | None = None,
    ) -> Movement:
        qty = to_decimal(quantity, "quantity")
        if qty <= 0:
            raise InvalidQuantityError("Quantity to add must be > 0.")
        exact_qty(qty)
        incoming_cost = quantize_cost(to_decimal(unit_cost_with_tax, "unit cost"))
        rate = self._tax_rate if tax_rate is None else to_decimal(tax_rate, "tax rate")

        averaged = average_unit_cost(
            existing_stock=self.total_stock,
            existing_unit_cost_with_tax=self._unit_cost_with_tax,
            incoming_quantity=qty,
            incoming_unit_cost_with_tax=incoming_cost,
            tax_rate_percent=rate,
        )

        self._stock_new += qty
        self._unit_cost_with_tax = averaged.with_tax
        self._tax_rate = rate
        return self._append(MOVEMENT_ENTRY, qty, incoming_cost, actor, reason)

    def record_withdrawal(self, quantity: object, actor: str, reason: str) -> Movement:
        qty = to_decimal(quantity, "quantity")
        # Stock bounds are checked before precision.
        depletion = deplete_buckets(self._stock_old, self._stock_new, qty)
        exact_qty(qty)
        self._stock_old = depletion.stock_old
        self._stock_new = depletion.stock_new
        return self._append(MOVEMENT_EXIT, qty, self._unit_cost_with_tax, actor, reason)

    def record_edit(self, actor: str, description: str, changes: Optional[dict] = None) -> Movement:
        accepted: dict[str, object] = {}
        for key, value in (changes or {}).items():
            if key not in EDITABLE_FIELDS:
                raise ValidationError(f"Field cannot be edited: {key}")
            if key == "low_stock_threshold":
                value = quantize_qty(to_decimal(value, "low stock threshold"))
                if value < 0:
                    raise InvalidQuantityError("Low stock threshold must be >= 0.")
            accepted[key] = value
        self._details.update(accepted)
        return self._append(MOVEMENT_EDIT, ZERO, self._unit_cost_with_tax, actor, description)

    def deactivate(self, actor: str, reason: str) -> None:
        if self.total_stock != 0:
            raise ValidationError("Remaining stock must be written off before deactivating.")
        self._deactivation = {
            "active": 0,
            "deleted_at": self._clock(),
            "deleted_by": actor,
            "deletion_reason": reason,
        }
