from datetime import datetime, UTC
from typing import Optional

from stocktrack import metrics
from stocktrack.errors import InsufficientInventory, InvalidArgument, NotFound
from stocktrack.inventory import InventoryLedger
from stocktrack.logging import get_logger
from stocktrack.models import Order, OrderStatus
from stocktrack.ownership import OwnershipFilter
from stocktrack.state import can_transition
from stocktrack.store import EntityStore

logger = get_logger("stocktrack.orders")


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidArgument("Invalid status") from None


class OrderWorkflow:
    """
    Order lifecycle against the inventory ledger.

    Inventory quantity is available stock: creating an order takes its
    quantity out of the ledger right away, and the order remembers what it
    holds in ``Order.reserved``. Stock goes back to the ledger only from
    ``reserved``, which is then zeroed, so cancelling and deleting the same
    order can never return it twice. Completing an order consumes the
    reservation.

    Each call validates everything first and mutates afterwards, under the
    item's lock, so a failed call leaves the store untouched.
    """

    def __init__(self, store: EntityStore, ledger: InventoryLedger, ownership: OwnershipFilter):
        self.store = store
        self.ledger = ledger
        self.ownership = ownership

    def create(self, owner_id: int, item_id: int, quantity: int) -> Order:
        if quantity <= 0:
            raise InvalidArgument("Quantity must be greater than 0")
        if item_id not in self.store.items:
            raise NotFound("Item not found")

        with self.store.item_lock(item_id):
            if item_id not in self.store.items:
                raise NotFound("Item not found")
            record = self.store.inventory.get(item_id)
            if record is None or record.quantity < quantity:
                metrics.inventory_reservation_failures.labels(reason="insufficient_stock").inc()
                raise InsufficientInventory("Insufficient inventory")

            self.ledger.adjust(item_id, -quantity)
            order = self.store.add_order(owner_id, item_id, quantity, OrderStatus.PENDING, reserved=quantity)

        metrics.orders_created_total.inc()
        logger.info(
            "Order created",
            extra={"order_id": order.id, "item_id": item_id, "user_id": owner_id, "quantity": quantity},
        )
        return order

    def update(
        self,
        owner_id: int,
        order_id: int,
        quantity: Optional[int] = None,
        status=None,
    ) -> Order:
        order = self.ownership.get_order(owner_id, order_id)
        new_status = parse_status(status) if status is not None else None
        if quantity is not None and quantity <= 0:
            raise InvalidArgument("Quantity must be greater than 0")

        with self.store.item_lock(order.item_id):
            if self.store.orders.get(order.id) is not order:
                # Deleted by a concurrent request while we waited on the lock
                raise NotFound("Order not found")

            quantity_changes = quantity is not None and quantity != order.quantity
            status_changes = new_status is not None and new_status != order.status

            if not (quantity_changes or status_changes):
                return order

            if order.is_terminal:
                raise InvalidArgument(f"Order is {order.status.value} and can no longer be modified")
            if status_changes and not can_transition(order.status, new_status):
                raise InvalidArgument(
                    f"Cannot change order status from {order.status.value} to {new_status.value}"
                )

            diff = 0
            if quantity_changes:
                diff = quantity - order.quantity
                record = self.store.inventory.get(order.item_id)
                if record is None:
                    metrics.inventory_reservation_failures.labels(reason="no_inventory").inc()
                    raise InsufficientInventory("Item not in inventory")
                if diff > 0 and record.quantity < diff:
                    metrics.inventory_reservation_failures.labels(reason="insufficient_stock").inc()
                    raise InsufficientInventory("Insufficient inventory for quantity increase")

            # --- Validation done, apply ---
            if quantity_changes:
                self.ledger.adjust(order.item_id, -diff)
                order.quantity = quantity
                order.reserved = quantity
                logger.info(
                    "Order quantity changed",
                    extra={"order_id": order.id, "item_id": order.item_id, "diff": diff},
                )

            if status_changes:
                old_status = order.status
                if new_status == OrderStatus.CANCELLED:
                    self._release(order, reason="status_update")
                elif new_status == OrderStatus.COMPLETED:
                    order.reserved = 0
                order.status = new_status
                metrics.order_status_transitions_total.labels(status=new_status.value).inc()
                logger.info(
                    "Order status changed",
                    extra={"order_id": order.id, "old_status": old_status.value, "new_status": new_status.value},
                )

            order.updated_at = datetime.now(UTC)
        return order

    def delete(self, owner_id: int, order_id: int) -> Order:
        order = self.ownership.get_order(owner_id, order_id)
        with self.store.item_lock(order.item_id):
            if self.store.orders.pop(order.id, None) is None:
                # Deleted by a concurrent request while we waited on the lock
                raise NotFound("Order not found")
            self._release(order, reason="deleted")

        logger.info("Order deleted", extra={"order_id": order.id, "user_id": owner_id})
        return order

    def _release(self, order: Order, reason: str) -> None:
        if order.reserved == 0:
            return

        if order.item_id in self.store.inventory:
            self.ledger.adjust(order.item_id, order.reserved)
        else:
            logger.warning(
                "Inventory record gone, reserved stock not returned",
                extra={"order_id": order.id, "item_id": order.item_id, "quantity": order.reserved},
            )
        order.reserved = 0
        metrics.orders_canceled_total.labels(reason=reason).inc()
