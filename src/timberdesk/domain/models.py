from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, fields
from typing import Any

UNIT_BUNDLE = "bundle"
UNIT_BOARD = "board"
UNIT_TYPES = (UNIT_BUNDLE, UNIT_BOARD)

CLIENT_CASH = "CASH"
CLIENT_CREDIT = "CREDIT"
CLIENT_TYPES = (CLIENT_CASH, CLIENT_CREDIT)

ROLE_ADMIN = "admin"
ROLE_SALES = "sales"


def new_id() -> str:
    return uuid.uuid4().hex


class _Record:
    """dict conversion shared by every persisted entity (cache files store plain dicts)."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True)
class ProductItem(_Record):
    id: str
    name: str
    code: str
    type: str = ""
    length: float = 0.0
    width: float = 0.0
    thickness: float = 0.0
    origin: str = ""
    bundles: float = 0.0
    boards_per_bundle: int = 0
    buy_price: float = 0.0
    sell_price: float = 0.0

    @property
    def total_boards(self) -> float:
        return self.bundles * self.boards_per_bundle


@dataclass(frozen=True)
class Sale(_Record):
    id: str
    invoice_id: str
    item_id: str
    item_name: str
    quantity: float
    unit_type: str
    unit_price: float
    total_price: float
    date: str
    client_name: str


@dataclass(frozen=True)
class Purchase(_Record):
    id: str
    item_id: str
    quantity_bundles: float
    cost: float
    date: str
    supplier: str = ""


@dataclass(frozen=True)
class Client(_Record):
    id: str
    name: str
    phone: str = ""
    address: str = ""
    type: str = CLIENT_CASH


@dataclass(frozen=True)
class Employee(_Record):
    id: str
    name: str
    position: str = ""
    salary: float = 0.0
    advances: float = 0.0

    @property
    def net_due(self) -> float:
        return self.salary - self.advances


@dataclass(frozen=True)
class CartLine:
    """A sale line being assembled, before it gets an invoice id and a date."""

    item_id: str
    item_name: str
    quantity: float
    unit_type: str
    unit_price: float

    @property
    def total(self) -> float:
        return self.quantity * self.unit_price


@dataclass(frozen=True)
class User:
    name: str
    role: str
