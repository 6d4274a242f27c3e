"""
Catalog Store

Typed query functions over categories, menu products and ingredients,
plus the admin-side mutations and the atomic stock guard used at
checkout.

Reads take no locks: menu browsing may see stock that is about to
change. The only write that races is reserve_stock, which is a single
conditional UPDATE rather than a read-then-write.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.errors import InvalidQuantity, NotFound
from app.models import Category, Ingredient, Product, ProductIngredient

logger = logging.getLogger(__name__)


# =============================================================================
# CATEGORIES
# =============================================================================

async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(select(Category).order_by(Category.name))
    return list(result.scalars().all())


async def get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFound(f"Category #{category_id} not found")
    return category


async def create_category(db: AsyncSession, name: str) -> Category:
    category = Category(name=name)
    db.add(category)
    await db.commit()
    logger.info(f"Category #{category.id} created: {name}")
    return category


# =============================================================================
# PRODUCTS
# =============================================================================

async def list_products(db: AsyncSession) -> list[Product]:
    """Return the whole menu, grouped by category then sorted by name."""
    result = await db.execute(
        select(Product).order_by(Product.category_id, Product.name)
    )
    return list(result.scalars().all())


async def find_products_by_category(db: AsyncSession, category_id: int) -> list[Product]:
    """
    Return the products of one category sorted by name.

    Raises:
        NotFound: If the category does not exist
    """
    await get_category(db, category_id)
    result = await db.execute(
        select(Product)
        .where(Product.category_id == category_id)
        .order_by(Product.name)
    )
    return list(result.scalars().all())


async def find_products_by_ingredient(db: AsyncSession, ingredient_id: int) -> list[Product]:
    """Return every product that uses the given ingredient."""
    result = await db.execute(
        select(Product)
        .join(ProductIngredient, ProductIngredient.product_id == Product.id)
        .where(ProductIngredient.ingredient_id == ingredient_id)
        .order_by(Product.name)
    )
    return list(result.scalars().all())


async def get_product(db: AsyncSession, product_id: int) -> Product:
    """
    Return a product with its ingredients loaded.

    Raises:
        NotFound: If the product does not exist
    """
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .options(selectinload(Product.ingredients))
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise NotFound(f"Product #{product_id} not found")
    return product


async def get_products_by_ids(db: AsyncSession, product_ids: Iterable[int]) -> dict[int, Product]:
    """
    Load several products at once, keyed by id. Missing ids are absent.

    Rows already in the session are refreshed from the database, so
    price and stock are never read from a stale identity map.
    """
    ids = set(product_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(Product)
        .where(Product.id.in_(ids))
        .execution_options(populate_existing=True)
    )
    return {product.id: product for product in result.scalars().all()}


async def create_product(
    db: AsyncSession,
    name: str,
    price: Decimal,
    category_id: int,
    stock_quantity: int = 0,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
) -> Product:
    await get_category(db, category_id)
    _validate_price(price)
    if stock_quantity < 0:
        raise InvalidQuantity(stock_quantity, "Stock cannot be negative")

    product = Product(
        name=name,
        description=description,
        price=Decimal(price),
        stock_quantity=stock_quantity,
        image_url=image_url,
        category_id=category_id,
    )
    db.add(product)
    await db.commit()
    logger.info(f"Product #{product.id} created: {name} @ {price}")
    return product


async def update_product(
    db: AsyncSession,
    product_id: int,
    price: Optional[Decimal] = None,
    stock_quantity: Optional[int] = None,
) -> Product:
    """
    Change a product's price and/or stock.

    Already-placed orders keep the price captured at checkout.
    """
    product = await db.get(Product, product_id)
    if product is None:
        raise NotFound(f"Product #{product_id} not found")

    # Validate everything before touching the row so a rejected edit
    # leaves nothing dirty in the session
    if price is not None:
        _validate_price(price)
    if stock_quantity is not None and stock_quantity < 0:
        raise InvalidQuantity(stock_quantity, "Stock cannot be negative")

    if price is not None:
        product.price = Decimal(price)
    if stock_quantity is not None:
        product.stock_quantity = stock_quantity

    await db.commit()
    logger.info(f"Product #{product_id} updated (price={product.price}, stock={product.stock_quantity})")
    return product


async def reserve_stock(db: AsyncSession, product_id: int, quantity: int) -> bool:
    """
    Atomically take `quantity` units of stock from a product.

    Compare-and-decrement in one statement: the row only changes if it
    still holds enough stock, so two concurrent checkouts can never
    both pass and drive stock below zero. Runs inside the caller's
    transaction; nothing is committed here.

    Returns:
        True if the stock was decremented, False if there was not enough
    """
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock_quantity >= quantity)
        .values(stock_quantity=Product.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# =============================================================================
# INGREDIENTS
# =============================================================================

async def list_ingredients(db: AsyncSession) -> list[Ingredient]:
    result = await db.execute(select(Ingredient).order_by(Ingredient.name))
    return list(result.scalars().all())


async def create_ingredient(
    db: AsyncSession,
    name: str,
    unit: str = "pcs",
    stock_quantity: int = 0,
) -> Ingredient:
    if stock_quantity < 0:
        raise InvalidQuantity(stock_quantity, "Stock cannot be negative")
    ingredient = Ingredient(name=name, unit=unit, stock_quantity=stock_quantity)
    db.add(ingredient)
    await db.commit()
    logger.info(f"Ingredient #{ingredient.id} created: {name} ({unit})")
    return ingredient


async def add_ingredient_to_product(db: AsyncSession, product_id: int, ingredient_id: int) -> None:
    """Link an ingredient to a product. Linking twice is a no-op."""
    if await db.get(Product, product_id) is None:
        raise NotFound(f"Product #{product_id} not found")
    if await db.get(Ingredient, ingredient_id) is None:
        raise NotFound(f"Ingredient #{ingredient_id} not found")

    if await db.get(ProductIngredient, (product_id, ingredient_id)) is not None:
        return

    db.add(ProductIngredient(product_id=product_id, ingredient_id=ingredient_id))
    await db.commit()


def _validate_price(price: Decimal) -> None:
    if Decimal(price) < 0:
        raise InvalidQuantity(price, "Price cannot be negative")
