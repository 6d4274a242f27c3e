"""
Order History Reader

Read path over placed orders. Every query is scoped to the requesting
user; another user's order is reported as not found, never forbidden,
so order ids do not leak.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.errors import NotFound
from app.models import Order


async def list_orders(db: AsyncSession, user_id: str) -> list[Order]:
    """Return the user's orders, most recent first, with their items."""
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())


async def get_order_detail(db: AsyncSession, order_id: int, user_id: str) -> Order:
    """
    Return one of the user's orders with its items.

    Raises:
        NotFound: If the order does not exist or belongs to another user
    """
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id, Order.user_id == user_id)
        .options(selectinload(Order.items))
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFound(f"Order #{order_id} not found")
    return order
