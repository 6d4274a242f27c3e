"""
Pydantic Schemas for Request/Response Validation

Catalog browsing, cart manipulation, checkout and order history.
Money fields are Decimal end to end.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models import OrderStatus


# =============================================================================
# CATALOG
# =============================================================================

class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class IngredientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    unit: str
    stock_quantity: int


class ProductResponse(BaseModel):
    """Menu item as shown in listings."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    price: Decimal
    stock_quantity: int
    image_url: Optional[str]
    category_id: int


class ProductDetailResponse(ProductResponse):
    """Menu item with its ingredients."""
    ingredients: List[IngredientResponse] = []


# =============================================================================
# CART
# =============================================================================

class CartItemAdd(BaseModel):
    """Request to add units of a product to the cart."""
    product_id: int = Field(..., ge=1, examples=[7])
    # Range checks happen in the cart so they surface as InvalidQuantity
    quantity: int = Field(default=1, examples=[2])


class CartItemUpdate(BaseModel):
    """Request to set a product's quantity. Zero removes the line."""
    quantity: int = Field(..., examples=[3])


class CartLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    quantity: int


class CartResponse(BaseModel):
    lines: List[CartLineResponse]
    total_quantity: int


# =============================================================================
# ORDERS
# =============================================================================

class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderSummaryResponse(BaseModel):
    """Order as shown in the history list."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    status: OrderStatus
    total_amount: Decimal
    created_at: datetime


class OrderResponse(OrderSummaryResponse):
    """Order with its line items."""
    items: List[OrderItemResponse]


class OrderCreateResponse(BaseModel):
    """Response after successfully placing an order."""
    success: bool
    message: str
    order: OrderResponse


class OrderListResponse(BaseModel):
    """Response for listing a user's orders."""
    total: int
    orders: List[OrderSummaryResponse]


# =============================================================================
# SYSTEM
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None
    product_id: Optional[int] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    cart_store: str
    timestamp: datetime
