from __future__ import annotations

import logging

from openpyxl import load_workbook

from stockcost.domain.errors import AppError, ValidationError
from stockcost.domain.models import PurchaseInput
from stockcost.domain.numbers import to_decimal

log = logging.getLogger(__name__)

REQUIRED_HEADERS = ("material_id", "quantity", "total_price", "tax_rate", "price_includes_tax")
OPTIONAL_HEADERS = ("is_packaged", "units_per_package", "content_per_unit")

_TRUE = ("1", "true", "yes", "y", "si", "sí", "x")
_FALSE = ("0", "false", "no", "n", "")


def _cell_bool(value, field: str) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValidationError(f"{field} must be yes/no. Received: {value!r}")


def _value(values: tuple, headers: dict[str, int], name: str, default=None):
    idx = headers.get(name)
    if idx is None or idx >= len(values) or values[idx] is None:
        return default
    return values[idx]


class ExcelService:
    def __init__(self, purchase_service):
        self.purchases = purchase_service

    def import_purchases(self, path: str, actor: str) -> tuple[int, int]:
        """
        Each row is a purchase received for an existing material.
        Headers:
          material_id | quantity | total_price | tax_rate | price_includes_tax
          | is_packaged | units_per_package | content_per_unit
        The last three are optional and default to an unpackaged purchase of
        single units.
        """
        wb = load_workbook(path, read_only=True, data_only=True)
        try:
            ws = wb.active
            rows = ws.iter_rows(values_only=True)
            header_row = next(rows, None) or ()

            headers = {}
            for idx, v in enumerate(header_row):
                if isinstance(v, str):
                    headers[v.strip().lower()] = idx

            for r in REQUIRED_HEADERS:
                if r not in headers:
                    raise ValidationError(f"Missing column header: {r}")

            ok = 0
            skipped = 0
            for row_number, values in enumerate(rows, start=2):
                if all(v is None for v in values):
                    continue
                try:
                    material_id = _value(values, headers, "material_id")
                    if material_id is None:
                        raise ValidationError("material_id is required.")
                    purchase = PurchaseInput(
                        quantity=to_decimal(_value(values, headers, "quantity"), "quantity"),
                        total_price=to_decimal(_value(values, headers, "total_price"), "total_price"),
                        tax_rate=to_decimal(_value(values, headers, "tax_rate"), "tax_rate"),
                        price_includes_tax=_cell_bool(_value(values, headers, "price_includes_tax"), "price_includes_tax"),
                        is_packaged=_cell_bool(_value(values, headers, "is_packaged"), "is_packaged"),
                        units_per_package=to_decimal(_value(values, headers, "units_per_package", 1), "units_per_package"),
                        content_per_unit=to_decimal(_value(values, headers, "content_per_unit", 1), "content_per_unit"),
                    )
                    self.purchases.receive_purchase(
                        int(to_decimal(material_id, "material_id")),
                        purchase,
                        actor,
                        reason=f"Excel import row {row_number}",
                    )
                    ok += 1
                except AppError as e:
                    log.warning("Excel import skipped row %s: %s", row_number, e)
                    skipped += 1
        finally:
            wb.close()

        log.info("excel_import_finished path=%s ok=%s skipped=%s", path, ok, skipped)
        return ok, skipped
