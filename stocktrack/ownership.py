from typing import List, Optional

from stocktrack.errors import InvalidArgument, NotFound
from stocktrack.inventory import InventoryLedger
from stocktrack.logging import get_logger
from stocktrack.models import Item, Order
from stocktrack.store import EntityStore

logger = get_logger("stocktrack.ownership")


class OwnershipFilter:
    """
    Item CRUD and order listing scoped to the requesting user. Records owned
    by someone else raise NotFound, same as records that do not exist.
    """

    def __init__(self, store: EntityStore, ledger: InventoryLedger):
        self.store = store
        self.ledger = ledger

    # ======================
    # Items
    # ======================

    def list_items(self, owner_id: int) -> List[Item]:
        return [i for i in self.store.items.values() if i.owner_id == owner_id]

    def get_item(self, owner_id: int, item_id: int) -> Item:
        item = self.store.items.get(item_id)
        if item is None or item.owner_id != owner_id:
            raise NotFound("Item not found")
        return item

    def create_item(self, owner_id: int, title: str, description: Optional[str] = None) -> Item:
        if not title:
            raise InvalidArgument("Title is required")
        item = self.store.add_item(owner_id, title, description or "")
        logger.info("Item created", extra={"item_id": item.id, "user_id": owner_id})
        return item

    def update_item(
        self, owner_id: int, item_id: int, title: str, description: Optional[str] = None
    ) -> Item:
        item = self.get_item(owner_id, item_id)
        if not title:
            raise InvalidArgument("Title is required")
        item.title = title
        if description:
            item.description = description
        return item

    def delete_item(self, owner_id: int, item_id: int) -> Item:
        item = self.get_item(owner_id, item_id)
        with self.store.item_lock(item.id):
            if self.store.items.pop(item.id, None) is None:
                raise NotFound("Item not found")
            try:
                self.ledger.remove(item.id)
            except NotFound:
                pass
        logger.info("Item deleted", extra={"item_id": item.id, "user_id": owner_id})
        return item

    # ======================
    # Orders
    # ======================

    def list_orders(self, owner_id: int) -> List[Order]:
        return [o for o in self.store.orders.values() if o.owner_id == owner_id]

    def get_order(self, owner_id: int, order_id: int) -> Order:
        order = self.store.orders.get(order_id)
        if order is None or order.owner_id != owner_id:
            raise NotFound("Order not found")
        return order
