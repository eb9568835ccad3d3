from __future__ import annotations

import sqlite3
from dataclasses import replace
from typing import Callable, Optional, Protocol

from stockcost.domain.errors import NotFoundError
from stockcost.domain.ledger import StockLedger, now_iso
from stockcost.domain.models import Material, Movement
from stockcost.repositories.sqlite_repo import SqliteRepository


class UnitOfWork(Protocol):
    def __enter__(self) -> "UnitOfWork": ...
    def __exit__(self, exc_type, exc, tb) -> None: ...
    def add_material(self, draft: Material) -> StockLedger: ...
    def load_ledger(self, material_id: int) -> StockLedger: ...
    def save(self, ledger: StockLedger) -> tuple[Material, list[Movement]]: ...


class SqliteUnitOfWork:
    """One write transaction around a material mutation.

    ``BEGIN IMMEDIATE`` takes the database write lock before the material is read,
    so concurrent writers never compute from a stale stock or cost. Leaving the
    block with an exception rolls back the material update and the movements
    together; a clean exit commits both.
    """

    def __init__(self, repo: SqliteRepository, clock: Optional[Callable[[], str]] = None):
        self.repo = repo
        self.clock = clock or now_iso
        self._conn: sqlite3.Connection | None = None
        self._cur: sqlite3.Cursor | None = None

    def __enter__(self) -> "SqliteUnitOfWork":
        self._conn = self.repo._conn(autocommit=True)
        self._conn.execute("BEGIN IMMEDIATE")
        self._cur = self._conn.cursor()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        conn = self._conn
        self._conn = None
        self._cur = None
        if conn is None:
            return None
        try:
            if exc_type is None:
                try:
                    conn.execute("COMMIT")
                except Exception:
                    conn.execute("ROLLBACK")
                    raise
            else:
                conn.execute("ROLLBACK")
        finally:
            conn.close()
        return None

    @property
    def cursor(self) -> sqlite3.Cursor:
        if self._cur is None:
            raise RuntimeError("Unit of work is not active.")
        return self._cur

    def add_material(self, draft: Material) -> StockLedger:
        now = self.clock()
        material_id = self.repo._insert_material(self.cursor, draft, now)
        stored = replace(draft, id=material_id, active=1, created_at=now, updated_at=now)
        return StockLedger(stored, clock=self.clock)

    def load_ledger(self, material_id: int) -> StockLedger:
        material = self.repo._fetch_material(self.cursor, material_id)
        if material is None:
            raise NotFoundError(f"Material not found: {material_id}")
        return StockLedger(material, clock=self.clock)

    def save(self, ledger: StockLedger) -> tuple[Material, list[Movement]]:
        now = self.clock()
        material = replace(ledger.snapshot(), updated_at=now)
        self.repo._update_material(self.cursor, material, now)
        saved = []
        for mv in ledger.pending_movements:
            movement_id = self._append_movement(mv)
            saved.append(replace(mv, id=movement_id))
        return material, saved

    def _append_movement(self, movement: Movement) -> int:
        return self.repo._insert_movement(self.cursor, movement)
