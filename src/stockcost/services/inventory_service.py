from __future__ import annotations

import logging
from decimal import Decimal
from typing import Callable, Optional

from stockcost.domain.costing import normalize_content, price_purchase
from stockcost.domain.errors import InvalidQuantityError, NotFoundError, ValidationError
from stockcost.domain.ledger import EDITABLE_FIELDS, check_reconciliation
from stockcost.domain.models import (
    REASON_CREATION,
    REASON_DELETION,
    STORAGE_MODES,
    STORAGE_PIECES,
    Material,
    Movement,
    PurchaseInput,
    WithdrawalRequest,
)
from stockcost.domain.numbers import ZERO, quantize_qty, to_decimal, to_money
from stockcost.domain.units import base_unit_of
from stockcost.logging_config import LEDGER_LOGGER
from stockcost.repositories.sqlite_repo import SqliteRepository
from stockcost.repositories.unit_of_work import SqliteUnitOfWork, UnitOfWork

log = logging.getLogger(LEDGER_LOGGER)

PIECE_UNIT = "pza"


def _required(value: Optional[str], label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{label} is required.")
    return text


class InventoryService:
    def __init__(
        self,
        repo: SqliteRepository,
        uow_factory: Callable[[], UnitOfWork] | None = None,
    ):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: SqliteUnitOfWork(repo))

    def create_material(
        self,
        name: str,
        category: str,
        storage_mode: str,
        content_unit: str,
        purchase: PurchaseInput,
        actor: str,
        low_stock_threshold: object = 0,
        supplier: str = "",
        barcode: str = "",
    ) -> tuple[Material, Movement]:
        """Register a material together with the purchase that brings it in.

        ``content_unit`` is the measure of ``purchase.content_per_unit``; it is
        normalised to its base measure (kg to g, L to ml) before pricing. In
        pieces mode the buckets count pieces and ``conversion_factor`` holds
        the base content of one piece; in content mode the buckets count the
        base measure directly.
        """
        name = _required(name, "Name")
        actor = _required(actor, "Actor")
        if storage_mode not in STORAGE_MODES:
            raise ValidationError(f"Storage mode must be one of {', '.join(STORAGE_MODES)}.")
        threshold = quantize_qty(to_decimal(low_stock_threshold, "low stock threshold"))
        if threshold < 0:
            raise InvalidQuantityError("Low stock threshold must be >= 0.")

        base_unit = base_unit_of(content_unit)
        purchase = normalize_content(purchase, content_unit, base_unit)
        priced = price_purchase(purchase, storage_mode)

        if storage_mode == STORAGE_PIECES:
            storage_unit = PIECE_UNIT
            factor = to_decimal(purchase.content_per_unit, "content per unit")
        else:
            storage_unit = base_unit
            factor = Decimal("1")

        draft = Material(
            id=0,
            name=name,
            category=(category or "").strip(),
            storage_mode=storage_mode,
            storage_unit=storage_unit,
            base_unit=base_unit,
            conversion_factor=factor,
            stock_old=ZERO,
            stock_new=ZERO,
            unit_cost_with_tax=ZERO,
            tax_rate=priced.tax_rate,
            low_stock_threshold=threshold,
            supplier=(supplier or "").strip(),
            barcode=(barcode or "").strip(),
        )

        with self.uow_factory() as uow:
            ledger = uow.add_material(draft)
            ledger.record_entry(
                priced.stock_quantity,
                priced.unit_cost.with_tax,
                actor,
                REASON_CREATION,
                tax_rate=priced.tax_rate,
            )
            material, movements = uow.save(ledger)

        log.info(
            "material_created material_id=%s name=%s mode=%s qty=%s unit_cost=%s actor=%s",
            material.id, material.name, material.storage_mode, priced.stock_quantity,
            material.unit_cost_with_tax, actor,
        )
        return material, movements[0]

    def withdraw(self, material_id: int, quantity: object, actor: str, reason: str) -> tuple[Material, Movement]:
        actor = _required(actor, "Actor")
        reason = _required(reason, "Reason")
        with self.uow_factory() as uow:
            ledger = uow.load_ledger(int(material_id))
            ledger.record_withdrawal(quantity, actor, reason)
            material, movements = uow.save(ledger)

        log.info(
            "exit_recorded material_id=%s qty=%s stock_old=%s stock_new=%s actor=%s reason=%s",
            material.id, movements[0].quantity, material.stock_old, material.stock_new, actor, reason,
        )
        return material, movements[0]

    def apply_withdrawal(self, material_id: int, request: WithdrawalRequest, actor: str) -> tuple[Material, Movement]:
        return self.withdraw(material_id, request.quantity, actor, request.reason)

    def update_details(self, material_id: int, actor: str, **changes) -> tuple[Material, Optional[Movement]]:
        actor = _required(actor, "Actor")
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(f"Field cannot be edited: {', '.join(unknown)}")
        if "name" in changes:
            changes["name"] = _required(changes["name"], "Name")

        with self.uow_factory() as uow:
            ledger = uow.load_ledger(int(material_id))
            current = ledger.snapshot()
            changed = {}
            for key, value in changes.items():
                if key == "low_stock_threshold":
                    value = quantize_qty(to_decimal(value, "low stock threshold"))
                elif isinstance(value, str):
                    value = value.strip()
                if getattr(current, key) != value:
                    changed[key] = value
            if not changed:
                return current, None

            description = "Updated: " + ", ".join(sorted(changed))
            ledger.record_edit(actor, description, changed)
            material, movements = uow.save(ledger)

        log.info("material_edited material_id=%s fields=%s actor=%s", material.id, ",".join(sorted(changed)), actor)
        return material, movements[0]

    def delete_material(self, material_id: int, actor: str, reason: str = "") -> Material:
        """Logical deletion: write off what is left, then deactivate. History stays."""
        actor = _required(actor, "Actor")
        with self.uow_factory() as uow:
            ledger = uow.load_ledger(int(material_id))
            written_off = ledger.total_stock
            if written_off > 0:
                ledger.record_withdrawal(written_off, actor, REASON_DELETION)
            ledger.deactivate(actor, (reason or "").strip() or REASON_DELETION)
            material, _ = uow.save(ledger)

        log.warning("material_deleted material_id=%s written_off=%s actor=%s", material.id, written_off, actor)
        return material

    def list_materials(self, include_inactive: bool = False) -> list[Material]:
        return self.repo.list_materials(include_inactive=include_inactive)

    def get_material(self, material_id: int, include_inactive: bool = False) -> Material:
        m = self.repo.get_material_by_id(int(material_id), include_inactive=include_inactive)
        if not m:
            raise NotFoundError(f"Material not found: {material_id}")
        return m

    def low_stock(self) -> list[Material]:
        return [m for m in self.repo.list_materials() if m.is_low_stock]

    def movements_for(self, material_id: int) -> list[Movement]:
        self.get_material(material_id, include_inactive=True)
        return self.repo.movements_for_material(int(material_id))

    def inventory_value(self) -> tuple[Decimal, Decimal]:
        """(with tax, without tax) value of the active stock."""
        materials = self.repo.list_materials()
        with_tax = sum((m.value_with_tax for m in materials), ZERO)
        without_tax = sum((m.value_without_tax for m in materials), ZERO)
        return to_money(with_tax), to_money(without_tax)

    def verify_ledger(self, material_id: int) -> None:
        material = self.get_material(material_id, include_inactive=True)
        check_reconciliation(material, self.repo.movements_for_material(material.id))
