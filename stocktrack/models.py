import enum
from dataclasses import dataclass, field
from datetime import datetime, UTC


def _now() -> datetime:
    return datetime.now(UTC)


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class User:
    id: int
    username: str
    password_hash: str
    created_at: datetime = field(default_factory=_now)


@dataclass
class Item:
    id: int
    title: str
    owner_id: int
    description: str = ""


@dataclass
class InventoryRecord:
    id: int
    item_id: int
    quantity: int = 0
    updated_at: datetime = field(default_factory=_now)


@dataclass
class Order:
    id: int
    owner_id: int
    item_id: int
    quantity: int
    status: OrderStatus = OrderStatus.PENDING
    # Stock this order still holds in the ledger. Drops to 0 once the stock
    # is returned (cancel/delete) or consumed (completed).
    reserved: int = 0
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})
