# marketplace/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Generic, List, TypeVar
from decimal import Decimal
from datetime import datetime

from marketplace.domain.statuses import (
    DeliveryMethod,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Role,
)

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Standard response wrapper: {success, data, message}."""

    success: bool = True
    message: str | None = None
    data: T


# ---------------------------------------------------------------- users

class UserCreate(BaseModel):
    id: int = Field(..., gt=0, description="User ID (must be > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="User name")
    role: Role = Role.BUYER


class UserRead(BaseModel):
    id: int
    name: str
    role: Role

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- cart

class CartItemIn(BaseModel):
    """Add a product (optionally a variant) to the cart."""

    product_id: int = Field(..., gt=0)
    variant_id: int | None = Field(None, gt=0)
    quantity: int = Field(..., gt=0)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., gt=0)


class ProductBrief(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class CartItemOut(BaseModel):
    id: int
    product_id: int
    variant_id: int | None = None
    quantity: int
    price_at_add: Decimal
    subtotal: Decimal
    product: ProductBrief | None = None

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    id: int
    user_id: int
    items: List[CartItemOut]

    model_config = ConfigDict(from_attributes=True)


class CartView(BaseModel):
    cart: CartOut
    total: Decimal
    item_count: int

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- orders

class CheckoutIn(BaseModel):
    """
    Checkout request. pickup needs pickup_location,
    delivery needs delivery_address.
    """

    delivery_method: DeliveryMethod
    pickup_location: str | None = Field(None, max_length=255)
    delivery_address: str | None = None

    @model_validator(mode="after")
    def check_destination(self):
        if self.delivery_method == DeliveryMethod.PICKUP and not self.pickup_location:
            raise ValueError("pickup_location is required when delivery_method is pickup")
        if self.delivery_method == DeliveryMethod.DELIVERY and not self.delivery_address:
            raise ValueError("delivery_address is required when delivery_method is delivery")
        return self


class StatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    variant_id: int | None = None
    quantity: int
    price_at_purchase: Decimal
    subtotal: Decimal

    model_config = ConfigDict(from_attributes=True)


class PaymentOut(BaseModel):
    id: int
    order_id: int
    method: PaymentMethod
    amount: Decimal
    status: PaymentStatus
    paid_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    buyer_id: int
    cart_id: int | None = None
    status: OrderStatus
    total: Decimal
    delivery_method: DeliveryMethod
    pickup_location: str | None = None
    delivery_address: str | None = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = []
    payments: List[PaymentOut] = []

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------- payments

class PaymentCreate(BaseModel):
    order_id: int = Field(..., gt=0)
    method: PaymentMethod
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    status: PaymentStatus = PaymentStatus.PENDING


class PaymentUpdate(BaseModel):
    status: PaymentStatus
    amount: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)


class PaymentCreated(Envelope[PaymentOut]):
    redirect_url: str | None = None


# ---------------------------------------------------------------- reviews

class ReviewCreate(BaseModel):
    product_id: int = Field(..., gt=0)
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=1000)


class ReviewUpdate(BaseModel):
    rating: int | None = Field(None, ge=1, le=5)
    comment: str | None = Field(None, max_length=1000)


class ReviewOut(BaseModel):
    id: int
    product_id: int
    user_id: int
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewStats(BaseModel):
    total_reviews: int
    average_rating: float
    # always keyed 1..5, zero-filled
    rating_distribution: dict[int, int]
