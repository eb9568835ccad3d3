from __future__ import annotations

import sqlite3
import shutil
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Optional

from stockcost.domain.models import Material, Movement

_MATERIAL_COLUMNS = """
    id, name, category, storage_mode, storage_unit, base_unit, conversion_factor,
    stock_old, stock_new, unit_cost_with_tax, tax_rate, low_stock_threshold,
    supplier, barcode, active, created_at, updated_at, deleted_at, deleted_by, deletion_reason
"""

_MOVEMENT_COLUMNS = """
    id, material_id, movement_type, quantity, unit_cost_with_tax, tax_rate,
    storage_unit, actor, reason, stock_after, datetime
"""


class SqliteRepository:
    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self, autocommit: bool = False) -> sqlite3.Connection:
        if autocommit:
            conn = sqlite3.connect(self.db_path, timeout=10, isolation_level=None)
        else:
            conn = sqlite3.connect(self.db_path, timeout=10)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def run_migrations(self) -> None:
        conn = self._conn()
        backup_path = self._create_pre_migration_backup()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            current_version = int(cur.fetchone()[0])

            migrations = [
                (1, self._migration_v1_base),
                (2, self._migration_v2_append_only_ledger),
            ]

            for version, migration in migrations:
                if version <= current_version:
                    continue
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                "Database migration failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS materials (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            category TEXT NOT NULL DEFAULT '',
            storage_mode TEXT NOT NULL CHECK(storage_mode IN ('pieces','content')),
            storage_unit TEXT NOT NULL,
            base_unit TEXT NOT NULL,
            conversion_factor TEXT NOT NULL CHECK(CAST(conversion_factor AS REAL) > 0),
            stock_old TEXT NOT NULL DEFAULT '0' CHECK(CAST(stock_old AS REAL) >= 0),
            stock_new TEXT NOT NULL DEFAULT '0' CHECK(CAST(stock_new AS REAL) >= 0),
            unit_cost_with_tax TEXT NOT NULL DEFAULT '0' CHECK(CAST(unit_cost_with_tax AS REAL) >= 0),
            tax_rate TEXT NOT NULL DEFAULT '0' CHECK(CAST(tax_rate AS REAL) >= 0),
            low_stock_threshold TEXT NOT NULL DEFAULT '0' CHECK(CAST(low_stock_threshold AS REAL) >= 0),
            supplier TEXT NOT NULL DEFAULT '',
            barcode TEXT NOT NULL DEFAULT '',
            active INTEGER NOT NULL DEFAULT 1 CHECK(active IN (0,1)),
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            deleted_at TEXT,
            deleted_by TEXT,
            deletion_reason TEXT
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS movements (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            material_id INTEGER NOT NULL,
            movement_type TEXT NOT NULL CHECK(movement_type IN ('entry','exit','edit')),
            quantity TEXT NOT NULL,
            unit_cost_with_tax TEXT NOT NULL CHECK(CAST(unit_cost_with_tax AS REAL) >= 0),
            tax_rate TEXT NOT NULL CHECK(CAST(tax_rate AS REAL) >= 0),
            storage_unit TEXT NOT NULL,
            actor TEXT NOT NULL,
            reason TEXT NOT NULL DEFAULT '',
            stock_after TEXT NOT NULL CHECK(CAST(stock_after AS REAL) >= 0),
            datetime TEXT NOT NULL,
            CHECK (
                (movement_type = 'edit' AND CAST(quantity AS REAL) = 0)
                OR (movement_type <> 'edit' AND CAST(quantity AS REAL) > 0)
            ),
            FOREIGN KEY(material_id) REFERENCES materials(id)
        )
        """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_movements_material ON movements(material_id, id)")

    def _migration_v2_append_only_ledger(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
            CREATE TRIGGER IF NOT EXISTS trg_movements_no_update
            BEFORE UPDATE ON movements
            BEGIN
                SELECT RAISE(ABORT, 'movements are append-only');
            END
            """
        )
        cur.execute(
            """
            CREATE TRIGGER IF NOT EXISTS trg_movements_no_delete
            BEFORE DELETE ON movements
            BEGIN
                SELECT RAISE(ABORT, 'movements are append-only');
            END
            """
        )
        cur.execute(
            """
            CREATE TRIGGER IF NOT EXISTS trg_materials_storage_mode_fixed
            BEFORE UPDATE OF storage_mode ON materials
            WHEN NEW.storage_mode <> OLD.storage_mode
            BEGIN
                SELECT RAISE(ABORT, 'storage mode is fixed at creation');
            END
            """
        )

    # ---------- Row mapping ----------
    @staticmethod
    def _row_to_material(r) -> Material:
        return Material(
            id=int(r[0]),
            name=str(r[1]),
            category=str(r[2]),
            storage_mode=str(r[3]),
            storage_unit=str(r[4]),
            base_unit=str(r[5]),
            conversion_factor=Decimal(r[6]),
            stock_old=Decimal(r[7]),
            stock_new=Decimal(r[8]),
            unit_cost_with_tax=Decimal(r[9]),
            tax_rate=Decimal(r[10]),
            low_stock_threshold=Decimal(r[11]),
            supplier=str(r[12]),
            barcode=str(r[13]),
            active=int(r[14]),
            created_at=r[15],
            updated_at=r[16],
            deleted_at=r[17],
            deleted_by=r[18],
            deletion_reason=r[19],
        )

    @staticmethod
    def _row_to_movement(r) -> Movement:
        return Movement(
            id=int(r[0]),
            material_id=int(r[1]),
            movement_type=str(r[2]),
            quantity=Decimal(r[3]),
            unit_cost_with_tax=Decimal(r[4]),
            tax_rate=Decimal(r[5]),
            storage_unit=str(r[6]),
            actor=str(r[7]),
            reason=str(r[8]),
            stock_after=Decimal(r[9]),
            datetime=str(r[10]),
        )

    # ---------- Writes (cursor owned by a unit of work) ----------
    def _fetch_material(self, cur: sqlite3.Cursor, material_id: int, include_inactive: bool = False) -> Optional[Material]:
        sql = f"SELECT {_MATERIAL_COLUMNS} FROM materials WHERE id=?"
        if not include_inactive:
            sql += " AND active=1"
        cur.execute(sql, (int(material_id),))
        r = cur.fetchone()
        return self._row_to_material(r) if r else None

    def _insert_material(self, cur: sqlite3.Cursor, m: Material, now_iso: str) -> int:
        cur.execute(
            """
            INSERT INTO materials (
                name, category, storage_mode, storage_unit, base_unit, conversion_factor,
                stock_old, stock_new, unit_cost_with_tax, tax_rate, low_stock_threshold,
                supplier, barcode, active, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
            """,
            (
                m.name,
                m.category,
                m.storage_mode,
                m.storage_unit,
                m.base_unit,
                str(m.conversion_factor),
                str(m.stock_old),
                str(m.stock_new),
                str(m.unit_cost_with_tax),
                str(m.tax_rate),
                str(m.low_stock_threshold),
                m.supplier,
                m.barcode,
                now_iso,
                now_iso,
            ),
        )
        return int(cur.lastrowid)

    def _update_material(self, cur: sqlite3.Cursor, m: Material, now_iso: str) -> None:
        cur.execute(
            """
            UPDATE materials
            SET name=?, category=?, supplier=?, barcode=?, low_stock_threshold=?,
                stock_old=?, stock_new=?, unit_cost_with_tax=?, tax_rate=?,
                active=?, deleted_at=?, deleted_by=?, deletion_reason=?, updated_at=?
            WHERE id=?
            """,
            (
                m.name,
                m.category,
                m.supplier,
                m.barcode,
                str(m.low_stock_threshold),
                str(m.stock_old),
                str(m.stock_new),
                str(m.unit_cost_with_tax),
                str(m.tax_rate),
                int(m.active),
                m.deleted_at,
                m.deleted_by,
                m.deletion_reason,
                now_iso,
                int(m.id),
            ),
        )
        if cur.rowcount != 1:
            raise sqlite3.IntegrityError(f"Material {m.id} was not updated.")

    def _insert_movement(self, cur: sqlite3.Cursor, mv: Movement) -> int:
        cur.execute(
            """
            INSERT INTO movements (
                material_id, movement_type, quantity, unit_cost_with_tax, tax_rate,
                storage_unit, actor, reason, stock_after, datetime
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                int(mv.material_id),
                mv.movement_type,
                str(mv.quantity),
                str(mv.unit_cost_with_tax),
                str(mv.tax_rate),
                mv.storage_unit,
                mv.actor,
                mv.reason,
                str(mv.stock_after),
                mv.datetime,
            ),
        )
        return int(cur.lastrowid)

    # ---------- Reads ----------
    def get_material_by_id(self, material_id: int, include_inactive: bool = False) -> Optional[Material]:
        conn = self._conn()
        try:
            return self._fetch_material(conn.cursor(), material_id, include_inactive)
        finally:
            conn.close()

    def list_materials(self, include_inactive: bool = False) -> list[Material]:
        conn = self._conn()
        cur = conn.cursor()
        sql = f"SELECT {_MATERIAL_COLUMNS} FROM materials"
        if not include_inactive:
            sql += " WHERE active=1"
        cur.execute(sql + " ORDER BY name, id")
        rows = cur.fetchall()
        conn.close()
        return [self._row_to_material(r) for r in rows]

    def movements_for_material(self, material_id: int) -> list[Movement]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            f"SELECT {_MOVEMENT_COLUMNS} FROM movements WHERE material_id=? ORDER BY id",
            (int(material_id),),
        )
        rows = cur.fetchall()
        conn.close()
        return [self._row_to_movement(r) for r in rows]

    def ledger_snapshot(self) -> list[tuple[Material, list[Movement]]]:
        """Every material with its movements, read in a single transaction."""
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("BEGIN")
            cur.execute(f"SELECT {_MATERIAL_COLUMNS} FROM materials ORDER BY id")
            materials = [self._row_to_material(r) for r in cur.fetchall()]
            cur.execute(f"SELECT {_MOVEMENT_COLUMNS} FROM movements ORDER BY id")
            by_material: dict[int, list[Movement]] = {}
            for r in cur.fetchall():
                mv = self._row_to_movement(r)
                by_material.setdefault(mv.material_id, []).append(mv)
            conn.rollback()
        finally:
            conn.close()
        return [(m, by_material.get(m.id, [])) for m in materials]

    def integrity_check(self) -> str:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("PRAGMA integrity_check")
        row = cur.fetchone()
        conn.close()
        return str(row[0]) if row else "unknown"
