"""
Order Finalizer

Turns a cart snapshot into a durable Order and its OrderItems.

Checkout is all-or-nothing: either one Order exists with an item per
cart line and every product's stock has been decremented, or nothing
was written at all. Prices are always re-read from the catalog; the
cart never carries prices.
"""

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import (
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    NotFound,
    OrderingError,
    TransactionFailure,
)
from app.models import Order, OrderItem, OrderStatus
from app.services import catalog
from app.services.cart import CartLine, ShoppingCart

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _merge_lines(lines: Iterable[CartLine]) -> "OrderedDict[int, int]":
    """Collapse lines for the same product, keeping first-seen order."""
    quantities: "OrderedDict[int, int]" = OrderedDict()
    for line in lines:
        if line.quantity <= 0:
            raise InvalidQuantity(line.quantity, f"Invalid quantity {line.quantity} for product #{line.product_id}")
        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
    return quantities


async def place_order(db: AsyncSession, user_id: str, lines: Iterable[CartLine]) -> Order:
    """
    Place an order for `user_id` from the given cart lines.

    Steps:
        1. Reject an empty cart
        2. Re-read every product and check stock >= quantity
        3. Total the order at current prices
        4. In one transaction: take stock with a conditional decrement,
           then insert the Order and one OrderItem per line
        5. Roll back everything on any failure

    Returns:
        Order: The persisted order with its items

    Raises:
        EmptyCart: No lines were given
        InvalidQuantity: A line has a non-positive quantity
        NotFound: A product no longer exists
        InsufficientStock: A product cannot cover the requested quantity
        TransactionFailure: Storage failed; nothing was committed
    """
    quantities = _merge_lines(lines)
    if not quantities:
        raise EmptyCart()

    try:
        products = await catalog.get_products_by_ids(db, quantities.keys())

        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None:
                raise NotFound(f"Product #{product_id} not found")
            if product.stock_quantity < quantity:
                raise InsufficientStock(product_id, quantity, product.stock_quantity)

        total = sum(
            (products[pid].price * qty for pid, qty in quantities.items()),
            Decimal("0"),
        ).quantize(CENT)

        # Another checkout may have taken the stock since the check above;
        # the conditional decrement is the real guard. Rows are locked in
        # product id order so overlapping checkouts cannot deadlock.
        for product_id, quantity in sorted(quantities.items()):
            if not await catalog.reserve_stock(db, product_id, quantity):
                raise InsufficientStock(product_id, quantity)

        order = Order(
            user_id=user_id,
            total_amount=total,
            status=OrderStatus.PLACED,
            items=[
                OrderItem(
                    product_id=product_id,
                    quantity=quantity,
                    unit_price=products[product_id].price,
                )
                for product_id, quantity in quantities.items()
            ],
        )
        db.add(order)
        await db.commit()

    except InsufficientStock as e:
        await db.rollback()
        logger.warning(f"Checkout rejected for user {user_id}: {e.detail}")
        raise
    except OrderingError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Checkout failed for user {user_id}: {e}")
        raise TransactionFailure() from e

    # Stock was changed behind the ORM's back
    for product in products.values():
        db.expire(product)

    logger.info(
        f"Order #{order.id} placed for user {user_id}: "
        f"{len(order.items)} item(s), total {order.total_amount}"
    )
    return order


async def checkout(db: AsyncSession, cart: ShoppingCart, user_id: str) -> Order:
    """
    Place an order from a session cart and empty the cart on success.

    On failure the cart is left untouched so the user can fix it.
    """
    lines = await cart.get_lines()
    order = await place_order(db, user_id, lines)
    await cart.clear()
    return order
