from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, conint
from pydantic.alias_generators import to_camel

from stocktrack.models import OrderStatus


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ======================
# Requests
# ======================

class CredentialsRequest(CamelModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ItemRequest(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None


class CreateInventoryRequest(CamelModel):
    item_id: conint(gt=0)
    quantity: int


class UpdateInventoryRequest(CamelModel):
    quantity: int


class CreateOrderRequest(CamelModel):
    item_id: conint(gt=0)
    quantity: int


class UpdateOrderRequest(CamelModel):
    quantity: Optional[int] = None
    status: Optional[str] = None


# ======================
# Responses
# ======================

class UserResponse(CamelModel):
    id: int
    username: str


class LoginResponse(CamelModel):
    message: str
    token: str
    user: UserResponse


class RegisterResponse(CamelModel):
    message: str
    user: UserResponse


class MessageResponse(CamelModel):
    message: str


class ItemResponse(CamelModel):
    id: int
    title: str
    description: str
    owner_id: int


class ItemDeletedResponse(CamelModel):
    message: str
    item: ItemResponse


class InventoryResponse(CamelModel):
    id: int
    item_id: int
    quantity: int
    low_stock: bool
    updated_at: datetime
    item: Optional[ItemResponse] = None


class InventoryDeletedResponse(CamelModel):
    message: str
    inventory: InventoryResponse


class OrderResponse(CamelModel):
    id: int
    owner_id: int
    item_id: int
    quantity: int
    status: OrderStatus
    created_at: datetime
    updated_at: datetime
    item: Optional[ItemResponse] = None


class OrderDeletedResponse(CamelModel):
    message: str
    order: OrderResponse


class HealthResponse(CamelModel):
    status: str
    message: str
