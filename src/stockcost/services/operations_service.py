from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from stockcost.domain.errors import ReconciliationViolationError
from stockcost.domain.ledger import check_reconciliation

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HealthReport:
    sqlite_integrity: str
    db_size_bytes: int
    logs_count: int
    materials_checked: int
    generated_at: str
    violations: tuple[ReconciliationViolationError, ...] = field(default=())

    @property
    def healthy(self) -> bool:
        return self.sqlite_integrity == "ok" and not self.violations


class OperationsService:
    def __init__(self, repo, db_path: Path | str, logs_dir: Path | str):
        self.repo = repo
        self.db_path = Path(db_path)
        self.logs_dir = Path(logs_dir)

    def reconciliation_violations(self, snapshot=None) -> list[ReconciliationViolationError]:
        """Every material, active or deleted, checked against its movements. Nothing is repaired."""
        if snapshot is None:
            snapshot = self.repo.ledger_snapshot()
        violations = []
        for material, movements in snapshot:
            try:
                check_reconciliation(material, movements)
            except ReconciliationViolationError as e:
                log.error(
                    "reconciliation_violation material_id=%s ledger=%s stock=%s",
                    e.material_id, e.ledger_total, e.stock_total,
                )
                violations.append(e)
        return violations

    def verify_all(self) -> None:
        violations = self.reconciliation_violations()
        if violations:
            raise violations[0]

    def run_health_check(self) -> HealthReport:
        integrity = self.repo.integrity_check()
        snapshot = self.repo.ledger_snapshot()
        violations = self.reconciliation_violations(snapshot)
        logs_count = len(list(self.logs_dir.glob("*.log"))) if self.logs_dir.exists() else 0
        size = self.db_path.stat().st_size if self.db_path.exists() else 0
        report = HealthReport(
            sqlite_integrity=integrity,
            db_size_bytes=size,
            logs_count=logs_count,
            materials_checked=len(snapshot),
            generated_at=datetime.now().isoformat(timespec="seconds"),
            violations=tuple(violations),
        )
        log.info(
            "health_check integrity=%s materials=%s violations=%s",
            integrity, report.materials_checked, len(violations),
        )
        return report
