from decimal import Decimal
from pathlib import Path

import pytest

from stockcost.config import CostingSettings, get_app_paths, load_settings
from stockcost.domain.errors import InvalidRateError, ValidationError


def test_defaults_without_environment():
    s = load_settings({})
    assert s == CostingSettings()
    assert s.tax_rate == Decimal("16")
    assert s.card_commission_rate == Decimal("3.5")
    assert not s.commission_enabled
    assert s.terminal_charges_tax


def test_environment_overrides():
    s = load_settings(
        {
            "STOCKCOST_TAX_RATE": "8",
            "STOCKCOST_CARD_COMMISSION_RATE": "2.9",
            "STOCKCOST_COMMISSION_ENABLED": "yes",
            "STOCKCOST_TERMINAL_CHARGES_TAX": "off",
        }
    )
    commission = s.commission()
    assert commission.enabled
    assert commission.rate_percent == Decimal("2.9")
    assert commission.tax_rate_percent == Decimal("8")
    assert not commission.terminal_charges_tax


def test_invalid_environment_values():
    with pytest.raises(ValidationError):
        load_settings({"STOCKCOST_COMMISSION_ENABLED": "maybe"})
    with pytest.raises(InvalidRateError):
        load_settings({"STOCKCOST_TAX_RATE": "-1"})
    with pytest.raises(ValidationError):
        load_settings({"STOCKCOST_TAX_RATE": "sixteen"})


def test_app_paths_are_created(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("APPDATA", str(tmp_path))
    paths = get_app_paths("StockCostTest")
    assert paths.logs_dir.exists()
    assert paths.db_path.name == "stock.db"
    assert paths.db_path.parent == paths.base_dir
