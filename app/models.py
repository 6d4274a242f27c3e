"""
SQLAlchemy Database Models

Catalog (categories, menu products, ingredients) and the durable side
of ordering (orders and their line items).

Prices and totals are stored as fixed-point Numeric(10, 2) and surface
as decimal.Decimal.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    """Order status. Only the initial state is implemented."""
    PLACED = "placed"


# =============================================================================
# CATALOG
# =============================================================================

class Category(Base):
    """Menu section (Pizza, Pasta, Drinks...). Immutable reference data."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category #{self.id} - {self.name}>"


class Product(Base):
    """
    A menu item that can be put in a cart and ordered.

    Price and stock are edited by admin operations; order items keep
    their own copy of the price so edits never rewrite history.
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    image_url = Column(String(500), nullable=True)
    category_id = Column(
        Integer,
        ForeignKey("categories.id"),
        nullable=False,
        index=True
    )

    category = relationship("Category", back_populates="products")
    ingredients = relationship(
        "Ingredient",
        secondary="product_ingredients",
        back_populates="products",
        order_by="Ingredient.name",
        viewonly=True,
    )

    def __repr__(self):
        return f"<Product #{self.id} - {self.name} - {self.price} - stock {self.stock_quantity}>"


class Ingredient(Base):
    """Kitchen ingredient with its own stock level and unit (g, ml, pcs)."""
    __tablename__ = "ingredients"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    stock_quantity = Column(Integer, nullable=False, default=0)
    unit = Column(String(20), nullable=False, default="pcs")

    products = relationship(
        "Product",
        secondary="product_ingredients",
        back_populates="ingredients",
        viewonly=True,
    )

    def __repr__(self):
        return f"<Ingredient #{self.id} - {self.name} ({self.unit})>"


class ProductIngredient(Base):
    """Product <-> Ingredient link. Identified only by the pair."""
    __tablename__ = "product_ingredients"

    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True
    )
    ingredient_id = Column(
        Integer,
        ForeignKey("ingredients.id", ondelete="CASCADE"),
        primary_key=True
    )


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    A placed order.

    Created exactly once at checkout together with all of its items.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PLACED,
        nullable=False,
        index=True
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def __repr__(self):
        return f"<Order #{self.id} - user {self.user_id} - {self.total_amount} - {self.status.value}>"


class OrderItem(Base):
    """One ordered product with quantity and the unit price paid."""
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    def __repr__(self):
        return f"<OrderItem #{self.id} - product {self.product_id} x{self.quantity} @ {self.unit_price}>"
