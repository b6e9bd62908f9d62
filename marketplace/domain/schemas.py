# marketplace/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal
from decimal import Decimal
from datetime import datetime



class UserCreate(BaseModel):
    """Schema for creating a user."""

    id: int = Field(..., gt=0, description="User ID (must be > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="User name")
    role: Literal["buyer", "admin"] = "buyer"


class UserRead(BaseModel):
    """Schema for a user (response)."""

    id: int
    name: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class ProductOut(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: int
    seller_id: int


class ItemIn(BaseModel):
    """Schema for adding a product to the cart, also one line of a direct order."""

    product_id: int = Field(..., gt=0, description="Product ID (must be > 0)")
    quantity: int = Field(..., gt=0, description="Quantity (must be > 0)")


class QuantityIn(BaseModel):
    quantity: int = Field(..., gt=0, description="New quantity (must be > 0)")


class RemoveItemsIn(BaseModel):
    product_ids: List[int] = Field(..., min_length=1)


class CartItemOut(BaseModel):
    """Schema for a cart item (response)."""

    product_id: int
    product_name: str
    quantity: int
    price: Decimal
    total_price: Decimal


class CartOut(BaseModel):
    """Schema for the cart (response)."""

    cart_id: int | None = None
    user_id: int
    items: List[CartItemOut]
    total: Decimal


class OrderFromCartIn(BaseModel):
    """Order the cart. Without product_ids the whole cart is ordered."""

    product_ids: List[int] | None = Field(default=None, min_length=1)


class OrderItemOut(BaseModel):
    product_id: int
    product_name: str
    quantity: int
    #line total at order time
    price: Decimal


class OrderOut(BaseModel):
    """Schema for an order (response)."""

    order_id: int
    buyer_id: int
    status: str
    total_amount: Decimal
    items: List[OrderItemOut]
    created_at: datetime


class OrderStatusIn(BaseModel):
    status: str = Field(..., min_length=1, description="pending, accepted, rejected, ontheway, finished")
