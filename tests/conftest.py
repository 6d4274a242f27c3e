import os

# Must be set before anything imports app.core.config
os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ORDER_EXPORT_ENABLED"] = "false"

from decimal import Decimal
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import build_engine, init_db
from app.services import catalog
from app.services.cart import MemoryCartStore, ShoppingCart


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh file-backed SQLite database per test.

    File-backed rather than :memory: so separate sessions get separate
    connections, like concurrent requests against a real server.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def cart_store():
    return MemoryCartStore(ttl_seconds=3600)


@pytest.fixture
def cart(cart_store):
    return ShoppingCart("session-001", cart_store, max_line_quantity=99)


@pytest_asyncio.fixture
async def menu(db):
    """Two categories, three products and a couple of ingredients."""
    pizza = await catalog.create_category(db, "Pizza")
    drinks = await catalog.create_category(db, "Drinks")

    margherita = await catalog.create_product(
        db, "Margherita", Decimal("12.50"), pizza.id, stock_quantity=5,
        description="Tomato, mozzarella, basil",
    )
    pepperoni = await catalog.create_product(
        db, "Pepperoni", Decimal("14.00"), pizza.id, stock_quantity=10,
    )
    cola = await catalog.create_product(
        db, "Cola", Decimal("2.99"), drinks.id, stock_quantity=50,
    )

    mozzarella = await catalog.create_ingredient(db, "Mozzarella", unit="g", stock_quantity=5000)
    basil = await catalog.create_ingredient(db, "Basil", unit="g", stock_quantity=200)
    await catalog.add_ingredient_to_product(db, margherita.id, mozzarella.id)
    await catalog.add_ingredient_to_product(db, margherita.id, basil.id)
    await catalog.add_ingredient_to_product(db, pepperoni.id, mozzarella.id)

    return SimpleNamespace(
        pizza=pizza,
        drinks=drinks,
        margherita=margherita,
        pepperoni=pepperoni,
        cola=cola,
        mozzarella=mozzarella,
        basil=basil,
    )
