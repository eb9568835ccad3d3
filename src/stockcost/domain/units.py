from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from stockcost.domain.errors import ValidationError


@dataclass(frozen=True)
class UnitInfo:
    symbol: str
    name: str
    base_symbol: str
    factor: Decimal
    category: str


UNITS: dict[str, UnitInfo] = {
    u.symbol: u
    for u in (
        UnitInfo("g", "grams", "g", Decimal("1"), "weight"),
        UnitInfo("kg", "kilograms", "g", Decimal("1000"), "weight"),
        UnitInfo("lb", "pounds", "g", Decimal("453.592"), "weight"),
        UnitInfo("ml", "millilitres", "ml", Decimal("1"), "volume"),
        UnitInfo("L", "litres", "ml", Decimal("1000"), "volume"),
        UnitInfo("gal", "gallons", "ml", Decimal("3785.41"), "volume"),
        UnitInfo("cm", "centimetres", "cm", Decimal("1"), "length"),
        UnitInfo("m", "metres", "cm", Decimal("100"), "length"),
        UnitInfo("pza", "pieces", "pza", Decimal("1"), "count"),
    )
}

_ALIASES = {
    "gr": "g", "gramos": "g", "grams": "g",
    "kilos": "kg", "kilogramos": "kg", "kilograms": "kg",
    "l": "L", "litros": "L", "litres": "L", "liters": "L",
    "mililitros": "ml", "millilitres": "ml", "milliliters": "ml",
    "metros": "m", "metres": "m", "meters": "m",
    "centimetros": "cm", "centímetros": "cm", "centimetres": "cm",
    "piezas": "pza", "pieces": "pza", "pzs": "pza", "pz": "pza", "u": "pza",
}


def get_unit(name: str) -> UnitInfo:
    key = (name or "").strip()
    if key in UNITS:
        return UNITS[key]
    alias = _ALIASES.get(key.lower())
    if alias is None:
        raise ValidationError(f"Unknown unit: {name!r}")
    return UNITS[alias]


def base_unit_of(name: str) -> str:
    return get_unit(name).base_symbol


def to_base(value: Decimal, unit: str) -> Decimal:
    return value * get_unit(unit).factor


def from_base(value: Decimal, unit: str) -> Decimal:
    return value / get_unit(unit).factor
