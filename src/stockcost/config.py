from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Mapping, Optional
import os
import sys

from stockcost.domain.errors import InvalidRateError, ValidationError
from stockcost.domain.numbers import to_decimal
from stockcost.domain.payments import CommissionSettings

ENV_PREFIX = "STOCKCOST_"


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class CostingSettings:
    tax_rate: Decimal = Decimal("16")
    card_commission_rate: Decimal = Decimal("3.5")
    commission_enabled: bool = False
    terminal_charges_tax: bool = True

    def commission(self) -> CommissionSettings:
        return CommissionSettings(
            enabled=self.commission_enabled,
            rate_percent=self.card_commission_rate,
            terminal_charges_tax=self.terminal_charges_tax,
            tax_rate_percent=self.tax_rate,
        )


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "StockCost") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "stock.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    raw = env.get(ENV_PREFIX + key, "").strip().lower()
    if not raw:
        return default
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    raise ValidationError(f"{ENV_PREFIX}{key} must be a boolean. Received: {raw!r}")


def _env_rate(env: Mapping[str, str], key: str, default: Decimal) -> Decimal:
    raw = env.get(ENV_PREFIX + key, "").strip()
    if not raw:
        return default
    rate = to_decimal(raw, ENV_PREFIX + key)
    if rate < 0:
        raise InvalidRateError(f"{ENV_PREFIX}{key} must be >= 0. Received: {rate}")
    return rate


def load_settings(env: Optional[Mapping[str, str]] = None) -> CostingSettings:
    env = os.environ if env is None else env
    defaults = CostingSettings()
    return CostingSettings(
        tax_rate=_env_rate(env, "TAX_RATE", defaults.tax_rate),
        card_commission_rate=_env_rate(env, "CARD_COMMISSION_RATE", defaults.card_commission_rate),
        commission_enabled=_env_bool(env, "COMMISSION_ENABLED", defaults.commission_enabled),
        terminal_charges_tax=_env_bool(env, "TERMINAL_CHARGES_TAX", defaults.terminal_charges_tax),
    )
