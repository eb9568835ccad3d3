from __future__ import annotations

import logging
from typing import Callable, Optional

from stockcost.domain.costing import PricedPurchase, normalize_content, price_purchase
from stockcost.domain.errors import ValidationError
from stockcost.domain.models import Material, Movement, PurchaseInput
from stockcost.logging_config import LEDGER_LOGGER
from stockcost.repositories.sqlite_repo import SqliteRepository
from stockcost.repositories.unit_of_work import SqliteUnitOfWork, UnitOfWork

log = logging.getLogger(LEDGER_LOGGER)


class PurchaseService:
    def __init__(self, repo: SqliteRepository, uow_factory: Callable[[], UnitOfWork] | None = None):
        self.repo = repo
        self.uow_factory = uow_factory or (lambda: SqliteUnitOfWork(repo))

    def receive_purchase(
        self,
        material_id: int,
        purchase: PurchaseInput,
        actor: str,
        reason: str = "purchase",
        content_unit: Optional[str] = None,
    ) -> tuple[Material, Movement, PricedPurchase]:
        """
        Converts the purchase to the material's storage unit, splits tax and
        averages the unit cost over the whole stock:
          new_cost = (stock*old_cost + qty*unit_cost) / (stock+qty)
        """
        actor = (actor or "").strip()
        if not actor:
            raise ValidationError("Actor is required.")

        with self.uow_factory() as uow:
            ledger = uow.load_ledger(int(material_id))
            current = ledger.snapshot()
            priced = price_purchase(
                normalize_content(purchase, content_unit, current.base_unit),
                current.storage_mode,
            )
            ledger.record_entry(
                priced.stock_quantity,
                priced.unit_cost.with_tax,
                actor,
                (reason or "").strip() or "purchase",
                tax_rate=priced.tax_rate,
            )
            material, movements = uow.save(ledger)

        log.info(
            "entry_recorded material_id=%s qty=%s cost=%s avg_cost=%s actor=%s",
            material.id, priced.stock_quantity, priced.unit_cost.with_tax, material.unit_cost_with_tax, actor,
        )
        return material, movements[0], priced
