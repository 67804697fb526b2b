"""Tests for OrderWorkflow: reservation, reconciliation and the status machine."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from stocktrack.errors import InsufficientInventory, InvalidArgument, NotFound
from stocktrack.models import OrderStatus


@pytest.fixture()
def stranger(store):
    return store.add_user("mallory", "unused-hash")


def _stock(ledger, item):
    return ledger.available(item.id)


class TestCreate:
    def test_reserves_stock(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        assert order.status == OrderStatus.PENDING
        assert order.quantity == 3
        assert order.reserved == 3
        assert _stock(ledger, laptop) == 7

    def test_can_take_all_stock(self, workflow, ledger, owner, laptop):
        workflow.create(owner.id, laptop.id, 10)
        assert _stock(ledger, laptop) == 0

    def test_insufficient_stock_leaves_inventory(self, workflow, ledger, store, owner, laptop):
        with pytest.raises(InsufficientInventory):
            workflow.create(owner.id, laptop.id, 11)
        assert _stock(ledger, laptop) == 10
        assert store.orders == {}

    def test_no_inventory_record(self, workflow, store, owner):
        item = store.add_item(owner.id, "No stock")
        with pytest.raises(InsufficientInventory):
            workflow.create(owner.id, item.id, 1)

    def test_unknown_item(self, workflow, owner):
        with pytest.raises(NotFound):
            workflow.create(owner.id, 999, 1)

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity(self, workflow, ledger, owner, laptop, quantity):
        with pytest.raises(InvalidArgument):
            workflow.create(owner.id, laptop.id, quantity)
        assert _stock(ledger, laptop) == 10


class TestUpdateQuantity:
    def test_increase(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        workflow.update(owner.id, order.id, quantity=5)
        assert order.quantity == 5
        assert order.reserved == 5
        assert _stock(ledger, laptop) == 5

    def test_decrease_returns_difference(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 6)
        workflow.update(owner.id, order.id, quantity=2)
        assert _stock(ledger, laptop) == 8

    def test_increase_beyond_stock(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 8)
        with pytest.raises(InsufficientInventory):
            workflow.update(owner.id, order.id, quantity=11)
        assert order.quantity == 8
        assert _stock(ledger, laptop) == 2

    def test_increase_to_exactly_available(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 8)
        workflow.update(owner.id, order.id, quantity=10)
        assert _stock(ledger, laptop) == 0

    def test_non_positive(self, workflow, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 2)
        with pytest.raises(InvalidArgument):
            workflow.update(owner.id, order.id, quantity=0)

    def test_inventory_removed(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 2)
        ledger.remove(laptop.id)
        with pytest.raises(InsufficientInventory):
            workflow.update(owner.id, order.id, quantity=1)
        assert order.quantity == 2

    def test_terminal_order_rejects_quantity(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 2)
        workflow.update(owner.id, order.id, status="completed")
        with pytest.raises(InvalidArgument):
            workflow.update(owner.id, order.id, quantity=1)
        assert _stock(ledger, laptop) == 8

    def test_same_quantity_is_noop(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 2)
        workflow.update(owner.id, order.id, quantity=2)
        assert _stock(ledger, laptop) == 8


class TestUpdateStatus:
    def test_invalid_value(self, workflow, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 2)
        with pytest.raises(InvalidArgument):
            workflow.update(owner.id, order.id, status="shipped")
        assert order.status == OrderStatus.PENDING

    def test_processing_keeps_stock(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 2)
        workflow.update(owner.id, order.id, status="processing")
        assert order.status == OrderStatus.PROCESSING
        assert _stock(ledger, laptop) == 8

    def test_cancel_restores(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 4)
        workflow.update(owner.id, order.id, status="cancelled")
        assert order.status == OrderStatus.CANCELLED
        assert order.reserved == 0
        assert _stock(ledger, laptop) == 10

    def test_cancel_twice_restores_once(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 4)
        workflow.update(owner.id, order.id, status="cancelled")
        workflow.update(owner.id, order.id, status="cancelled")
        assert _stock(ledger, laptop) == 10

    def test_complete_consumes(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 4)
        workflow.update(owner.id, order.id, status="processing")
        workflow.update(owner.id, order.id, status="completed")
        assert order.reserved == 0
        assert _stock(ledger, laptop) == 6

    def test_processing_back_to_pending_rejected(self, workflow, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 1)
        workflow.update(owner.id, order.id, status="processing")
        with pytest.raises(InvalidArgument):
            workflow.update(owner.id, order.id, status="pending")
        assert order.status == OrderStatus.PROCESSING

    def test_cancelled_cannot_reopen(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        workflow.update(owner.id, order.id, status="cancelled")
        with pytest.raises(InvalidArgument):
            workflow.update(owner.id, order.id, status="pending")
        assert _stock(ledger, laptop) == 10

    def test_quantity_and_cancel_together(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        workflow.update(owner.id, order.id, quantity=5, status="cancelled")
        assert order.quantity == 5
        assert _stock(ledger, laptop) == 10

    def test_failed_combined_update_changes_nothing(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        workflow.update(owner.id, order.id, status="processing")
        with pytest.raises(InvalidArgument):
            workflow.update(owner.id, order.id, quantity=4, status="pending")
        assert order.quantity == 3
        assert _stock(ledger, laptop) == 7

    def test_cancel_after_inventory_removed(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        ledger.remove(laptop.id)
        workflow.update(owner.id, order.id, status="cancelled")
        assert order.status == OrderStatus.CANCELLED
        assert order.reserved == 0


class TestDelete:
    def test_pending_restores(self, workflow, ledger, store, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        workflow.delete(owner.id, order.id)
        assert order.id not in store.orders
        assert _stock(ledger, laptop) == 10

    def test_completed_keeps_stock(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        workflow.update(owner.id, order.id, status="completed")
        workflow.delete(owner.id, order.id)
        assert _stock(ledger, laptop) == 7

    def test_cancelled_does_not_restore_again(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        workflow.update(owner.id, order.id, status="cancelled")
        workflow.delete(owner.id, order.id)
        assert _stock(ledger, laptop) == 10

    def test_delete_twice(self, workflow, ledger, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        workflow.delete(owner.id, order.id)
        with pytest.raises(NotFound):
            workflow.delete(owner.id, order.id)
        assert _stock(ledger, laptop) == 10


class TestOwnership:
    def test_other_owner_sees_not_found(self, workflow, ledger, owner, stranger, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        with pytest.raises(NotFound):
            workflow.update(stranger.id, order.id, status="cancelled")
        with pytest.raises(NotFound):
            workflow.delete(stranger.id, order.id)
        assert order.status == OrderStatus.PENDING
        assert _stock(ledger, laptop) == 7


def test_laptop_scenario(workflow, ledger, owner, laptop):
    order = workflow.create(owner.id, laptop.id, 3)
    assert order.status == OrderStatus.PENDING
    assert _stock(ledger, laptop) == 7

    workflow.update(owner.id, order.id, quantity=5)
    assert order.quantity == 5
    assert _stock(ledger, laptop) == 5

    workflow.update(owner.id, order.id, status="cancelled")
    assert _stock(ledger, laptop) == 10

    workflow.delete(owner.id, order.id)
    assert _stock(ledger, laptop) == 10


def test_stock_never_negative(workflow, ledger, owner, laptop):
    orders = []
    for _ in range(12):
        try:
            orders.append(workflow.create(owner.id, laptop.id, 3))
        except InsufficientInventory:
            pass
        assert _stock(ledger, laptop) >= 0

    assert len(orders) == 3
    assert _stock(ledger, laptop) == 1


class TestConcurrency:
    def test_parallel_creates_never_oversell(self, workflow, ledger, owner, laptop):
        start = threading.Barrier(25)

        def place_order():
            start.wait()
            try:
                workflow.create(owner.id, laptop.id, 1)
                return True
            except InsufficientInventory:
                return False

        with ThreadPoolExecutor(max_workers=25) as pool:
            results = list(pool.map(lambda _: place_order(), range(25)))

        assert results.count(True) == 10
        assert _stock(ledger, laptop) == 0

    def test_update_waiting_on_lock_sees_delete(self, monkeypatch, workflow, ledger, store, owner, laptop):
        order = workflow.create(owner.id, laptop.id, 3)
        looked_up = threading.Event()
        real_get_order = workflow.ownership.get_order

        def get_order(*args):
            found = real_get_order(*args)
            looked_up.set()
            return found

        monkeypatch.setattr(workflow.ownership, "get_order", get_order)
        errors = []

        def grow_order():
            try:
                workflow.update(owner.id, order.id, quantity=8)
            except NotFound as exc:
                errors.append(exc)

        with store.item_lock(laptop.id):
            worker = threading.Thread(target=grow_order)
            worker.start()
            assert looked_up.wait(timeout=5)
            workflow.delete(owner.id, order.id)

        worker.join(timeout=5)
        assert not worker.is_alive()
        assert len(errors) == 1
        assert store.orders == {}
        assert _stock(ledger, laptop) == 10

    def test_create_waiting_on_lock_sees_item_delete(
        self, monkeypatch, workflow, ownership, ledger, store, owner, laptop
    ):
        real_item_lock = store.item_lock
        waiting = threading.Event()

        def item_lock(item_id):
            if threading.current_thread() is not threading.main_thread():
                waiting.set()
            return real_item_lock(item_id)

        errors = []

        def place_order():
            try:
                workflow.create(owner.id, laptop.id, 2)
            except NotFound as exc:
                errors.append(exc)

        with real_item_lock(laptop.id):
            monkeypatch.setattr(store, "item_lock", item_lock)
            worker = threading.Thread(target=place_order)
            worker.start()
            assert waiting.wait(timeout=5)
            ownership.delete_item(owner.id, laptop.id)

        worker.join(timeout=5)
        assert not worker.is_alive()
        assert len(errors) == 1
        assert store.orders == {}
        assert laptop.id not in store.inventory
