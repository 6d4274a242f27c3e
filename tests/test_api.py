"""End-to-end tests of the HTTP surface against a per-test database."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

import app.main as main
from app.database import get_db
from app.services.cart import get_cart_store

USER_A = {"X-User-Id": "user-a"}
USER_B = {"X-User-Id": "user-b"}


@pytest.fixture
def api(session_maker, cart_store):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    main.app.dependency_overrides[get_db] = override_get_db
    main.app.dependency_overrides[get_cart_store] = lambda: cart_store
    yield main.app
    main.app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(api):
    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def other_client(api):
    async with AsyncClient(transport=ASGITransport(app=api), base_url="http://test") as c:
        yield c


class TestCatalogRoutes:
    @pytest.mark.asyncio
    async def test_list_categories(self, client, menu):
        response = await client.get("/api/categories")
        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Drinks", "Pizza"]

    @pytest.mark.asyncio
    async def test_category_products(self, client, menu):
        response = await client.get(f"/api/categories/{menu.pizza.id}/products")
        assert [p["name"] for p in response.json()] == ["Margherita", "Pepperoni"]

    @pytest.mark.asyncio
    async def test_unknown_category(self, client, menu):
        response = await client.get("/api/categories/404/products")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_product_detail(self, client, menu):
        response = await client.get(f"/api/products/{menu.margherita.id}")
        body = response.json()
        assert response.status_code == 200
        assert Decimal(body["price"]) == Decimal("12.50")
        assert [i["name"] for i in body["ingredients"]] == ["Basil", "Mozzarella"]

    @pytest.mark.asyncio
    async def test_list_products(self, client, menu):
        response = await client.get("/api/products")
        assert len(response.json()) == 3


class TestCartRoutes:
    @pytest.mark.asyncio
    async def test_cookie_keeps_session(self, client, menu):
        response = await client.post("/api/cart/items", json={"product_id": menu.cola.id, "quantity": 2})
        assert response.status_code == 200
        assert "cart_session" in response.cookies

        response = await client.get("/api/cart")
        assert response.json() == {
            "lines": [{"product_id": menu.cola.id, "quantity": 2}],
            "total_quantity": 2,
        }

    @pytest.mark.asyncio
    async def test_clients_have_separate_carts(self, client, other_client, menu):
        await client.post("/api/cart/items", json={"product_id": menu.cola.id})
        response = await other_client.get("/api/cart")
        assert response.json()["lines"] == []

    @pytest.mark.asyncio
    async def test_add_unknown_product(self, client, menu):
        response = await client.post("/api/cart/items", json={"product_id": 404})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_add_invalid_quantity(self, client, menu):
        response = await client.post("/api/cart/items", json={"product_id": menu.cola.id, "quantity": 0})
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_quantity"

    @pytest.mark.asyncio
    async def test_update_remove_and_clear(self, client, menu):
        await client.post("/api/cart/items", json={"product_id": menu.cola.id})
        await client.post("/api/cart/items", json={"product_id": menu.pepperoni.id})

        response = await client.put(f"/api/cart/items/{menu.cola.id}", json={"quantity": 4})
        assert response.json()["total_quantity"] == 5

        response = await client.put(f"/api/cart/items/{menu.cola.id}", json={"quantity": 0})
        assert response.json()["lines"] == [{"product_id": menu.pepperoni.id, "quantity": 1}]

        response = await client.delete(f"/api/cart/items/{menu.pepperoni.id}")
        assert response.json()["lines"] == []

        await client.post("/api/cart/items", json={"product_id": menu.cola.id})
        response = await client.delete("/api/cart")
        assert response.json() == {"lines": [], "total_quantity": 0}

    @pytest.mark.asyncio
    async def test_set_quantity_of_unknown_product(self, client, menu):
        response = await client.put("/api/cart/items/9999", json={"quantity": 2})
        assert response.status_code == 404
        assert (await client.get("/api/cart")).json()["lines"] == []

    @pytest.mark.asyncio
    async def test_zero_quantity_for_unknown_product_is_noop(self, client, menu):
        response = await client.put("/api/cart/items/9999", json={"quantity": 0})
        assert response.status_code == 200
        assert response.json()["lines"] == []


class TestOrderRoutes:
    @pytest.mark.asyncio
    async def test_checkout_flow(self, client, menu):
        await client.post("/api/cart/items", json={"product_id": menu.margherita.id, "quantity": 2})
        await client.post("/api/cart/items", json={"product_id": menu.cola.id, "quantity": 1})

        response = await client.post("/api/orders", headers=USER_A)
        assert response.status_code == 201
        order = response.json()["order"]
        assert order["user_id"] == "user-a"
        assert order["status"] == "placed"
        assert Decimal(order["total_amount"]) == Decimal("27.99")
        assert [(i["product_id"], i["quantity"]) for i in order["items"]] == [
            (menu.margherita.id, 2),
            (menu.cola.id, 1),
        ]

        assert (await client.get("/api/cart")).json()["lines"] == []

        product = (await client.get(f"/api/products/{menu.margherita.id}")).json()
        assert product["stock_quantity"] == 3

        history = (await client.get("/api/orders", headers=USER_A)).json()
        assert history["total"] == 1
        assert history["orders"][0]["id"] == order["id"]

        detail = await client.get(f"/api/orders/{order['id']}", headers=USER_A)
        assert detail.status_code == 200
        assert len(detail.json()["items"]) == 2

    @pytest.mark.asyncio
    async def test_checkout_requires_user(self, client, menu):
        await client.post("/api/cart/items", json={"product_id": menu.cola.id})
        response = await client.post("/api/orders")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_checkout_empty_cart(self, client, menu):
        response = await client.post("/api/orders", headers=USER_A)
        assert response.status_code == 400
        assert response.json()["error"] == "empty_cart"

    @pytest.mark.asyncio
    async def test_checkout_insufficient_stock(self, client, menu):
        await client.post("/api/cart/items", json={"product_id": menu.margherita.id, "quantity": 6})

        response = await client.post("/api/orders", headers=USER_A)
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "insufficient_stock"
        assert body["product_id"] == menu.margherita.id

        # The cart survives so the user can adjust it
        assert (await client.get("/api/cart")).json()["total_quantity"] == 6

    @pytest.mark.asyncio
    async def test_other_users_order_is_hidden(self, client, menu):
        await client.post("/api/cart/items", json={"product_id": menu.cola.id})
        order_id = (await client.post("/api/orders", headers=USER_A)).json()["order"]["id"]

        response = await client.get(f"/api/orders/{order_id}", headers=USER_B)
        assert response.status_code == 404
        assert (await client.get("/api/orders", headers=USER_B)).json()["total"] == 0


class TestOrderExport:
    @pytest.mark.asyncio
    async def test_export_is_queued_when_enabled(self, client, menu, monkeypatch):
        task = MagicMock()
        monkeypatch.setattr(main.settings, "order_export_enabled", True)
        monkeypatch.setattr(main, "export_order_to_excel", task)

        await client.post("/api/cart/items", json={"product_id": menu.cola.id, "quantity": 2})
        response = await client.post("/api/orders", headers=USER_A)

        assert response.status_code == 201
        payload = task.delay.call_args.args[0]
        assert payload["order_id"] == response.json()["order"]["id"]
        assert payload["items"] == [
            {"product_id": menu.cola.id, "quantity": 2, "unit_price": "2.99"},
        ]

    @pytest.mark.asyncio
    async def test_broker_failure_does_not_fail_checkout(self, client, menu, monkeypatch):
        task = MagicMock()
        task.delay.side_effect = ConnectionError("broker down")
        monkeypatch.setattr(main.settings, "order_export_enabled", True)
        monkeypatch.setattr(main, "export_order_to_excel", task)

        await client.post("/api/cart/items", json={"product_id": menu.cola.id})
        response = await client.post("/api/orders", headers=USER_A)
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_export_skipped_when_disabled(self, client, menu, monkeypatch):
        task = MagicMock()
        monkeypatch.setattr(main, "export_order_to_excel", task)

        await client.post("/api/cart/items", json={"product_id": menu.cola.id})
        await client.post("/api/orders", headers=USER_A)
        task.delay.assert_not_called()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        body = response.json()
        assert body["status"] == "operational"
        assert body["database"] == "healthy"
        assert body["cart_store"] == "healthy"
