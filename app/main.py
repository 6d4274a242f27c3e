"""
FastAPI Application Entry Point

Restaurant Menu & Ordering - catalog browsing, session cart and checkout.

Endpoints:
    - GET /api/categories, /api/products: Menu browsing
    - GET|POST|PUT|DELETE /api/cart...: Session shopping cart
    - POST /api/orders: Checkout (cart -> order)
    - GET /api/orders: Order history of the calling user
    - GET /health: System health check

The caller's identity arrives as the X-User-Id header from the upstream
auth layer; the cart session travels in a cookie.
"""

import asyncio
import logging
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

# Windows-specific event loop policy (psycopg async)
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from app.core.config import get_settings, setup_logging
from app.database import engine, get_db, init_db
from app.errors import OrderingError
from app.schemas import (
    CartItemAdd,
    CartItemUpdate,
    CartLineResponse,
    CartResponse,
    CategoryResponse,
    ErrorResponse,
    HealthResponse,
    OrderCreateResponse,
    OrderListResponse,
    OrderResponse,
    OrderSummaryResponse,
    ProductDetailResponse,
    ProductResponse,
)
from app.services import catalog, orders
from app.services.cart import BaseCartStore, ShoppingCart, get_cart_store
from app.tasks import export_order_to_excel, order_export_payload

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    await init_db()
    logger.info("✅ Database initialized")

    logger.info(f"✅ Cart Store: {get_cart_store().provider_name}")
    logger.info(f"✅ Order export: {'enabled' if settings.order_export_enabled else 'disabled'}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Restaurant menu, session shopping cart and atomic checkout. "
        "Stock is guarded per product with a conditional decrement."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

async def get_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """Authenticated user id supplied by the upstream identity provider."""
    if not x_user_id or len(x_user_id) > 64:
        raise HTTPException(status_code=401, detail="Missing or invalid X-User-Id header")
    return x_user_id


async def get_cart(
    request: Request,
    response: Response,
    store: BaseCartStore = Depends(get_cart_store),
) -> ShoppingCart:
    """
    Resolve the caller's cart from the session cookie, issuing a new
    session id on first use. The cookie is refreshed on every request.
    """
    session_id = request.cookies.get(settings.cart_cookie_name)
    if not session_id:
        session_id = uuid.uuid4().hex
        logger.debug(f"New cart session: {session_id}")

    response.set_cookie(
        settings.cart_cookie_name,
        session_id,
        max_age=settings.cart_session_ttl_seconds,
        httponly=True,
        samesite="lax",
    )
    return ShoppingCart(session_id, store, max_line_quantity=settings.cart_max_line_quantity)


async def cart_response(cart: ShoppingCart) -> CartResponse:
    return CartResponse(
        lines=[CartLineResponse.model_validate(line) for line in await cart.get_lines()],
        total_quantity=await cart.total_quantity(),
    )


def queue_order_export(order) -> None:
    """Hand a placed order to the Celery ledger export."""
    if not settings.order_export_enabled:
        return
    try:
        export_order_to_excel.delay(order_export_payload(order))
    except Exception as e:
        # The order is already committed; a missed export is recoverable
        logger.warning(f"Could not queue export for Order #{order.id}: {e}")


# =============================================================================
# HEALTH
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍕 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    store: BaseCartStore = Depends(get_cart_store),
) -> HealthResponse:
    """Verify the database and cart store are reachable."""
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    store_status = "healthy" if await store.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, store_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        cart_store=store_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# CATALOG ENDPOINTS
# =============================================================================

@app.get("/api/categories", response_model=list[CategoryResponse], tags=["Catalog"])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await catalog.list_categories(db)


@app.get(
    "/api/categories/{category_id}/products",
    response_model=list[ProductResponse],
    responses={404: {"model": ErrorResponse}},
    tags=["Catalog"],
)
async def list_category_products(category_id: int, db: AsyncSession = Depends(get_db)):
    return await catalog.find_products_by_category(db, category_id)


@app.get("/api/products", response_model=list[ProductResponse], tags=["Catalog"])
async def list_products(db: AsyncSession = Depends(get_db)):
    return await catalog.list_products(db)


@app.get(
    "/api/products/{product_id}",
    response_model=ProductDetailResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Catalog"],
)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return await catalog.get_product(db, product_id)


# =============================================================================
# CART ENDPOINTS
# =============================================================================

@app.get("/api/cart", response_model=CartResponse, tags=["Cart"])
async def view_cart(cart: ShoppingCart = Depends(get_cart)) -> CartResponse:
    return await cart_response(cart)


@app.post(
    "/api/cart/items",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Cart"],
)
async def add_cart_item(
    body: CartItemAdd,
    cart: ShoppingCart = Depends(get_cart),
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    """Add units of a menu product to the cart."""
    await catalog.get_product(db, body.product_id)
    await cart.add_item(body.product_id, body.quantity)
    return await cart_response(cart)


@app.put(
    "/api/cart/items/{product_id}",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Cart"],
)
async def update_cart_item(
    product_id: int,
    body: CartItemUpdate,
    cart: ShoppingCart = Depends(get_cart),
    db: AsyncSession = Depends(get_db),
) -> CartResponse:
    """Set a product's quantity. A quantity of 0 removes it."""
    if body.quantity > 0:
        await catalog.get_product(db, product_id)
    await cart.update_quantity(product_id, body.quantity)
    return await cart_response(cart)


@app.delete("/api/cart/items/{product_id}", response_model=CartResponse, tags=["Cart"])
async def remove_cart_item(
    product_id: int,
    cart: ShoppingCart = Depends(get_cart),
) -> CartResponse:
    await cart.remove_item(product_id)
    return await cart_response(cart)


@app.delete("/api/cart", response_model=CartResponse, tags=["Cart"])
async def clear_cart(cart: ShoppingCart = Depends(get_cart)) -> CartResponse:
    await cart.clear()
    return await cart_response(cart)


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@app.post(
    "/api/orders",
    response_model=OrderCreateResponse,
    status_code=201,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    tags=["Orders"],
    summary="Checkout",
)
async def place_order(
    user_id: str = Depends(get_user_id),
    cart: ShoppingCart = Depends(get_cart),
    db: AsyncSession = Depends(get_db),
) -> OrderCreateResponse:
    """
    Convert the session cart into an order.

    Stock and prices are re-checked against the catalog; on any failure
    nothing is written and the cart is kept.
    """
    logger.info(f"Checkout for user {user_id} (cart {cart.session_id})")

    order = await orders.checkout(db, cart, user_id)
    queue_order_export(order)

    return OrderCreateResponse(
        success=True,
        message="Order placed successfully!",
        order=OrderResponse.model_validate(order),
    )


@app.get("/api/orders", response_model=OrderListResponse, tags=["Orders"])
async def list_orders(
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """The calling user's orders, most recent first."""
    user_orders = await orders.list_orders(db, user_id)
    return OrderListResponse(
        total=len(user_orders),
        orders=[OrderSummaryResponse.model_validate(o) for o in user_orders],
    )


@app.get(
    "/api/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Orders"],
)
async def get_order(
    order_id: int,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    """Get one of the calling user's orders with its items."""
    order = await orders.get_order_detail(db, order_id, user_id)
    return OrderResponse.model_validate(order)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderingError)
async def ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    """Report catalog, cart and checkout errors to the caller."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
