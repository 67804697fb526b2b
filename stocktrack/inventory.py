from datetime import datetime, UTC
from typing import List

from stocktrack import metrics
from stocktrack.errors import Conflict, InvalidArgument, NotFound
from stocktrack.logging import get_logger
from stocktrack.models import InventoryRecord
from stocktrack.store import EntityStore

logger = get_logger("stocktrack.inventory")

DEFAULT_LOW_STOCK_THRESHOLD = 5


class InventoryLedger:
    """
    Available stock per item. Quantity never goes negative: every mutation
    checks the result before writing it.

    Inventory is global, not owner-scoped.
    """

    def __init__(self, store: EntityStore, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD):
        self.store = store
        self.low_stock_threshold = low_stock_threshold

    def is_low_stock(self, record: InventoryRecord) -> bool:
        return record.quantity < self.low_stock_threshold

    def get(self, item_id: int) -> InventoryRecord:
        record = self.store.inventory.get(item_id)
        if record is None:
            raise NotFound("Inventory item not found")
        return record

    def list(self, low_stock_only: bool = False) -> List[InventoryRecord]:
        records = sorted(self.store.inventory.values(), key=lambda r: r.id)
        if low_stock_only:
            records = [r for r in records if self.is_low_stock(r)]
        return records

    def available(self, item_id: int) -> int:
        return self.get(item_id).quantity

    def create(self, item_id: int, quantity: int) -> InventoryRecord:
        if quantity < 0:
            raise InvalidArgument("Quantity cannot be negative")
        if item_id not in self.store.items:
            raise NotFound("Item not found")

        with self.store.item_lock(item_id):
            if item_id not in self.store.items:
                raise NotFound("Item not found")
            if item_id in self.store.inventory:
                raise Conflict("Inventory already exists for this item")
            record = self.store.add_inventory(item_id, quantity)

        logger.info("Inventory created", extra={"item_id": item_id, "quantity": quantity})
        if self.is_low_stock(record):
            self._signal_low_stock(record)
        return record

    def adjust(self, item_id: int, delta: int) -> InventoryRecord:
        """
        Apply quantity += delta. Callers reserving stock check availability
        first; restocking (delta >= 0) always succeeds.
        """
        with self.store.item_lock(item_id):
            record = self.get(item_id)
            new_quantity = record.quantity + delta
            if new_quantity < 0:
                raise InvalidArgument(
                    f"Adjustment of {delta} would make quantity negative ({record.quantity} available)"
                )
            self._write(record, new_quantity)
        return record

    def set_quantity(self, item_id: int, quantity: int) -> InventoryRecord:
        if quantity < 0:
            raise InvalidArgument("Quantity cannot be negative")
        with self.store.item_lock(item_id):
            record = self.get(item_id)
            self._write(record, quantity)
        return record

    def remove(self, item_id: int) -> InventoryRecord:
        with self.store.item_lock(item_id):
            record = self.store.inventory.pop(item_id, None)
        if record is None:
            raise NotFound("Inventory item not found")
        logger.info("Inventory removed", extra={"item_id": item_id})
        return record

    def _write(self, record: InventoryRecord, quantity: int) -> None:
        was_low = self.is_low_stock(record)
        old = record.quantity
        record.quantity = quantity
        record.updated_at = datetime.now(UTC)

        logger.debug(
            "Inventory quantity changed",
            extra={"item_id": record.item_id, "old_quantity": old, "new_quantity": quantity},
        )
        if not was_low and self.is_low_stock(record):
            self._signal_low_stock(record)

    def _signal_low_stock(self, record: InventoryRecord) -> None:
        metrics.inventory_low_stock_total.inc()
        logger.warning(
            "Low stock",
            extra={
                "item_id": record.item_id,
                "quantity": record.quantity,
                "threshold": self.low_stock_threshold,
            },
        )
