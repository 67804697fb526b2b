import itertools
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from stocktrack.logging import get_logger
from stocktrack.models import TERMINAL_STATUSES, InventoryRecord, Item, Order, OrderStatus, User

logger = get_logger("stocktrack.store")


class EntityStore:
    """
    In-memory collections for the lifetime of the process.

    Users, items and orders are keyed by their id. Inventory is keyed by
    item id, which is unique per record. Ids come from per-collection
    counters and are never reused after a delete.
    """

    def __init__(self):
        self.users: Dict[int, User] = {}
        self.items: Dict[int, Item] = {}
        self.inventory: Dict[int, InventoryRecord] = {}
        self.orders: Dict[int, Order] = {}

        self._counters = {
            "users": itertools.count(1),
            "items": itertools.count(1),
            "inventory": itertools.count(1),
            "orders": itertools.count(1),
        }
        self._ids_lock = threading.Lock()
        self._locks_guard = threading.Lock()
        self._item_locks: Dict[int, threading.RLock] = {}

    def next_id(self, collection: str) -> int:
        with self._ids_lock:
            return next(self._counters[collection])

    @contextmanager
    def item_lock(self, item_id: int) -> Iterator[None]:
        """Serialize every stock-affecting change for one item."""
        with self._locks_guard:
            lock = self._item_locks.setdefault(item_id, threading.RLock())
        with lock:
            yield

    # ======================
    # Lookups
    # ======================

    def find_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users.values() if u.username == username), None)

    # ======================
    # Inserts
    # ======================

    def add_user(self, username: str, password_hash: str) -> User:
        user = User(id=self.next_id("users"), username=username, password_hash=password_hash)
        self.users[user.id] = user
        return user

    def add_item(self, owner_id: int, title: str, description: str = "") -> Item:
        item = Item(id=self.next_id("items"), title=title, description=description, owner_id=owner_id)
        self.items[item.id] = item
        return item

    def add_inventory(self, item_id: int, quantity: int) -> InventoryRecord:
        record = InventoryRecord(id=self.next_id("inventory"), item_id=item_id, quantity=quantity)
        self.inventory[item_id] = record
        return record

    def add_order(
        self,
        owner_id: int,
        item_id: int,
        quantity: int,
        status: OrderStatus = OrderStatus.PENDING,
        reserved: Optional[int] = None,
    ) -> Order:
        if reserved is None:
            reserved = 0 if status in TERMINAL_STATUSES else quantity
        order = Order(
            id=self.next_id("orders"),
            owner_id=owner_id,
            item_id=item_id,
            quantity=quantity,
            status=status,
            reserved=reserved,
        )
        self.orders[order.id] = order
        return order


def seed_demo_data(store: EntityStore, hash_password: Callable[[str], str]) -> None:
    """
    Two users with a few items, stock and orders, matching the demo client's
    fixtures. Inventory quantities are available stock, net of the pending
    order.
    """
    admin = store.add_user("admin", hash_password("password"))
    user1 = store.add_user("user1", hash_password("user123"))

    laptop = store.add_item(admin.id, "Laptop", "High-performance laptop for development")
    mouse = store.add_item(admin.id, "Wireless Mouse", "Ergonomic wireless mouse")
    mug = store.add_item(user1.id, "Coffee Mug", "Ceramic coffee mug")

    store.add_inventory(laptop.id, 10)
    store.add_inventory(mouse.id, 25)
    store.add_inventory(mug.id, 15)

    store.add_order(admin.id, laptop.id, 2, OrderStatus.PENDING)
    store.add_order(admin.id, mouse.id, 1, OrderStatus.COMPLETED)

    logger.info(
        "Seeded demo data",
        extra={"users": len(store.users), "items": len(store.items), "orders": len(store.orders)},
    )
