import sys
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


def make_repo(tmp_path: Path, name: str = "stock.db"):
    from stockcost.repositories.sqlite_repo import SqliteRepository

    repo = SqliteRepository(tmp_path / name)
    repo.init_db()
    return repo


def purchase(quantity, total_price, tax_rate="16", includes_tax=True, **kwargs):
    from stockcost.domain.models import PurchaseInput

    return PurchaseInput(
        quantity=Decimal(str(quantity)),
        total_price=Decimal(str(total_price)),
        tax_rate=Decimal(str(tax_rate)),
        price_includes_tax=includes_tax,
        **kwargs,
    )


def create_pieces_material(inventory, quantity=500, total_price=5000, name="Tornillo 1/4", **kwargs):
    """Pieces-mode material whose initial lot costs ``total_price / quantity`` each, tax included."""
    return inventory.create_material(
        name=name,
        category="Ferreteria",
        storage_mode="pieces",
        content_unit="pza",
        purchase=purchase(quantity, total_price),
        actor="ana",
        **kwargs,
    )
