from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request

from stocktrack.auth import AuthProvider
from stocktrack.inventory import InventoryLedger
from stocktrack.models import InventoryRecord, Item, Order
from stocktrack.orders import OrderWorkflow
from stocktrack.ownership import OwnershipFilter
from stocktrack.schemas import (
    CreateInventoryRequest,
    CreateOrderRequest,
    CredentialsRequest,
    HealthResponse,
    InventoryDeletedResponse,
    InventoryResponse,
    ItemDeletedResponse,
    ItemRequest,
    ItemResponse,
    LoginResponse,
    MessageResponse,
    OrderDeletedResponse,
    OrderResponse,
    RegisterResponse,
    UpdateInventoryRequest,
    UpdateOrderRequest,
    UserResponse,
)
from stocktrack.store import EntityStore

router = APIRouter()


# ======================
# Dependencies
# ======================

def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_auth(request: Request) -> AuthProvider:
    return request.app.state.auth


def get_ledger(request: Request) -> InventoryLedger:
    return request.app.state.ledger


def get_ownership(request: Request) -> OwnershipFilter:
    return request.app.state.ownership


def get_workflow(request: Request) -> OrderWorkflow:
    return request.app.state.workflow


def bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    if not authorization:
        return None
    _, _, token = authorization.partition(" ")
    return token or None


def current_user_id(
    token: Optional[str] = Depends(bearer_token),
    auth: AuthProvider = Depends(get_auth),
) -> int:
    return auth.authenticate(token)


def _item(item: Item) -> ItemResponse:
    return ItemResponse(id=item.id, title=item.title, description=item.description, owner_id=item.owner_id)


def _item_response(store: EntityStore, item_id: int) -> Optional[ItemResponse]:
    item = store.items.get(item_id)
    return _item(item) if item else None


def _inventory_response(ledger: InventoryLedger, record: InventoryRecord) -> InventoryResponse:
    return InventoryResponse(
        id=record.id,
        item_id=record.item_id,
        quantity=record.quantity,
        low_stock=ledger.is_low_stock(record),
        updated_at=record.updated_at,
        item=_item_response(ledger.store, record.item_id),
    )


def _order_response(store: EntityStore, order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        owner_id=order.owner_id,
        item_id=order.item_id,
        quantity=order.quantity,
        status=order.status,
        created_at=order.created_at,
        updated_at=order.updated_at,
        item=_item_response(store, order.item_id),
    )


# ======================
# Auth
# ======================

@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(req: CredentialsRequest, auth: AuthProvider = Depends(get_auth)):
    user = auth.register(req.username, req.password)
    return RegisterResponse(message="User created successfully", user=UserResponse.model_validate(user))


@router.post("/login", response_model=LoginResponse)
def login(req: CredentialsRequest, auth: AuthProvider = Depends(get_auth)):
    token, user = auth.login(req.username, req.password)
    return LoginResponse(message="Login successful", token=token, user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout(
    token: Optional[str] = Depends(bearer_token),
    _user_id: int = Depends(current_user_id),
    auth: AuthProvider = Depends(get_auth),
):
    auth.logout(token)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserResponse)
def me(user_id: int = Depends(current_user_id), auth: AuthProvider = Depends(get_auth)):
    return UserResponse.model_validate(auth.get_user(user_id))


# ======================
# Items
# ======================

@router.get("/items", response_model=List[ItemResponse])
def list_items(user_id: int = Depends(current_user_id), ownership: OwnershipFilter = Depends(get_ownership)):
    return [_item(i) for i in ownership.list_items(user_id)]


@router.get("/items/{item_id}", response_model=ItemResponse)
def get_item(
    item_id: int,
    user_id: int = Depends(current_user_id),
    ownership: OwnershipFilter = Depends(get_ownership),
):
    return _item(ownership.get_item(user_id, item_id))


@router.post("/items", response_model=ItemResponse, status_code=201)
def create_item(
    req: ItemRequest,
    user_id: int = Depends(current_user_id),
    ownership: OwnershipFilter = Depends(get_ownership),
):
    return _item(ownership.create_item(user_id, req.title, req.description))


@router.put("/items/{item_id}", response_model=ItemResponse)
def update_item(
    item_id: int,
    req: ItemRequest,
    user_id: int = Depends(current_user_id),
    ownership: OwnershipFilter = Depends(get_ownership),
):
    item = ownership.update_item(user_id, item_id, req.title, req.description)
    return _item(item)


@router.delete("/items/{item_id}", response_model=ItemDeletedResponse)
def delete_item(
    item_id: int,
    user_id: int = Depends(current_user_id),
    ownership: OwnershipFilter = Depends(get_ownership),
):
    item = ownership.delete_item(user_id, item_id)
    return ItemDeletedResponse(message="Item deleted successfully", item=_item(item))


# ======================
# Inventory
# ======================

@router.get("/inventory", response_model=List[InventoryResponse])
def list_inventory(
    low_stock: bool = Query(default=False, alias="lowStock"),
    _user_id: int = Depends(current_user_id),
    ledger: InventoryLedger = Depends(get_ledger),
):
    # Records whose item is gone are not listed
    return [
        _inventory_response(ledger, r)
        for r in ledger.list(low_stock_only=low_stock)
        if r.item_id in ledger.store.items
    ]


@router.get("/inventory/{item_id}", response_model=InventoryResponse)
def get_inventory(
    item_id: int,
    _user_id: int = Depends(current_user_id),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return _inventory_response(ledger, ledger.get(item_id))


@router.post("/inventory", response_model=InventoryResponse, status_code=201)
def create_inventory(
    req: CreateInventoryRequest,
    _user_id: int = Depends(current_user_id),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return _inventory_response(ledger, ledger.create(req.item_id, req.quantity))


@router.put("/inventory/{item_id}", response_model=InventoryResponse)
def update_inventory(
    item_id: int,
    req: UpdateInventoryRequest,
    _user_id: int = Depends(current_user_id),
    ledger: InventoryLedger = Depends(get_ledger),
):
    return _inventory_response(ledger, ledger.set_quantity(item_id, req.quantity))


@router.delete("/inventory/{item_id}", response_model=InventoryDeletedResponse)
def delete_inventory(
    item_id: int,
    _user_id: int = Depends(current_user_id),
    ledger: InventoryLedger = Depends(get_ledger),
):
    record = ledger.remove(item_id)
    return InventoryDeletedResponse(
        message="Inventory item removed successfully",
        inventory=_inventory_response(ledger, record),
    )


# ======================
# Orders
# ======================

@router.get("/orders", response_model=List[OrderResponse])
def list_orders(
    user_id: int = Depends(current_user_id),
    ownership: OwnershipFilter = Depends(get_ownership),
    store: EntityStore = Depends(get_store),
):
    return [_order_response(store, o) for o in ownership.list_orders(user_id)]


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    user_id: int = Depends(current_user_id),
    ownership: OwnershipFilter = Depends(get_ownership),
    store: EntityStore = Depends(get_store),
):
    return _order_response(store, ownership.get_order(user_id, order_id))


@router.post("/orders", response_model=OrderResponse, status_code=201)
def create_order(
    req: CreateOrderRequest,
    user_id: int = Depends(current_user_id),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    order = workflow.create(user_id, req.item_id, req.quantity)
    return _order_response(workflow.store, order)


@router.put("/orders/{order_id}", response_model=OrderResponse)
def update_order(
    order_id: int,
    req: UpdateOrderRequest,
    user_id: int = Depends(current_user_id),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    order = workflow.update(user_id, order_id, quantity=req.quantity, status=req.status)
    return _order_response(workflow.store, order)


@router.delete("/orders/{order_id}", response_model=OrderDeletedResponse)
def delete_order(
    order_id: int,
    user_id: int = Depends(current_user_id),
    workflow: OrderWorkflow = Depends(get_workflow),
):
    order = workflow.delete(user_id, order_id)
    return OrderDeletedResponse(
        message="Order cancelled successfully",
        order=_order_response(workflow.store, order),
    )


# Health check
@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="OK", message="Server is running")
