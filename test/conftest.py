import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from timberdesk.domain.models import ROLE_ADMIN, ROLE_SALES, User  # noqa: E402

ADMIN = User(name="boss", role=ROLE_ADMIN)
SELLER = User(name="counter", role=ROLE_SALES)


def make_container(tmp_path: Path, db_name: str = "timber.db"):
    from timberdesk.application.container import build_container

    return build_container(tmp_path / db_name, tmp_path / "cache")


def add_item(container, code: str = "PINE-4", bundles: float = 10, boards_per_bundle: int = 50, **overrides):
    fields = dict(
        name=f"Pine {code}",
        code=code,
        type="pine",
        length=4.0,
        width=0.2,
        thickness=0.05,
        origin="Romania",
        bundles=bundles,
        boards_per_bundle=boards_per_bundle,
        buy_price=10.0,
        sell_price=15.0,
    )
    fields.update(overrides)
    return container.inventory.save_item(ADMIN, **fields)
