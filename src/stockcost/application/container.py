from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from stockcost.config import CostingSettings, load_settings
from stockcost.repositories.sqlite_repo import SqliteRepository
from stockcost.services.excel_service import ExcelService
from stockcost.services.inventory_service import InventoryService
from stockcost.services.operations_service import OperationsService
from stockcost.services.payment_service import PaymentService
from stockcost.services.purchase_service import PurchaseService


@dataclass(frozen=True)
class AppContainer:
    repo: SqliteRepository
    settings: CostingSettings
    inventory: InventoryService
    purchases: PurchaseService
    payments: PaymentService
    excel: ExcelService
    operations: OperationsService


def build_container(db_path: Path | str, settings: CostingSettings | None = None) -> AppContainer:
    repo = SqliteRepository(db_path)
    repo.init_db()

    settings = settings or load_settings()
    inventory = InventoryService(repo)
    purchases = PurchaseService(repo)
    payments = PaymentService(settings)
    excel = ExcelService(purchases)
    operations = OperationsService(repo, db_path=db_path, logs_dir=Path(db_path).parent / "logs")

    return AppContainer(
        repo=repo,
        settings=settings,
        inventory=inventory,
        purchases=purchases,
        payments=payments,
        excel=excel,
        operations=operations,
    )
