"""Tests for the session shopping cart."""

import pytest

from app.errors import InvalidQuantity
from app.services.cart import CartLine, MemoryCartStore, ShoppingCart


class TestAddItem:
    @pytest.mark.asyncio
    async def test_add_item(self, cart):
        await cart.add_item(1, 2)
        assert await cart.get_lines() == [CartLine(product_id=1, quantity=2)]

    @pytest.mark.asyncio
    async def test_add_same_product_increases_quantity(self, cart):
        await cart.add_item(1, 1)
        await cart.add_item(1, 2)
        lines = await cart.get_lines()
        assert len(lines) == 1
        assert lines[0].quantity == 3

    @pytest.mark.asyncio
    async def test_lines_keep_insertion_order(self, cart):
        await cart.add_item(3, 1)
        await cart.add_item(1, 1)
        await cart.add_item(3, 1)
        assert [line.product_id for line in await cart.get_lines()] == [3, 1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_non_positive_quantity_rejected(self, cart, quantity):
        with pytest.raises(InvalidQuantity):
            await cart.add_item(1, quantity)
        assert await cart.get_lines() == []

    @pytest.mark.asyncio
    async def test_line_limit(self, cart):
        await cart.add_item(1, 98)
        with pytest.raises(InvalidQuantity):
            await cart.add_item(1, 2)
        assert (await cart.get_lines())[0].quantity == 98


class TestUpdateQuantity:
    @pytest.mark.asyncio
    async def test_update_quantity(self, cart):
        await cart.add_item(1, 1)
        await cart.update_quantity(1, 5)
        assert (await cart.get_lines())[0].quantity == 5

    @pytest.mark.asyncio
    async def test_zero_is_remove(self, cart_store):
        updated = ShoppingCart("a", cart_store)
        removed = ShoppingCart("b", cart_store)
        for c in (updated, removed):
            await c.add_item(1, 2)
            await c.add_item(2, 1)

        assert await updated.update_quantity(1, 0) is None
        await removed.remove_item(1)

        assert await updated.get_lines() == await removed.get_lines() == [CartLine(2, 1)]

    @pytest.mark.asyncio
    async def test_negative_rejected(self, cart):
        await cart.add_item(1, 2)
        with pytest.raises(InvalidQuantity):
            await cart.update_quantity(1, -1)
        assert (await cart.get_lines())[0].quantity == 2

    @pytest.mark.asyncio
    async def test_update_missing_product_adds_line(self, cart):
        await cart.update_quantity(4, 2)
        assert await cart.get_lines() == [CartLine(4, 2)]

    @pytest.mark.asyncio
    async def test_update_above_limit_rejected(self, cart):
        with pytest.raises(InvalidQuantity):
            await cart.update_quantity(1, 100)


class TestRemoveAndClear:
    @pytest.mark.asyncio
    async def test_remove_item(self, cart):
        await cart.add_item(1, 1)
        await cart.add_item(2, 1)
        await cart.remove_item(1)
        assert await cart.get_lines() == [CartLine(2, 1)]

    @pytest.mark.asyncio
    async def test_remove_absent_is_noop(self, cart):
        await cart.add_item(1, 1)
        await cart.remove_item(99)
        assert await cart.get_lines() == [CartLine(1, 1)]

    @pytest.mark.asyncio
    async def test_removing_last_line_drops_session(self, cart, cart_store):
        await cart.add_item(1, 1)
        await cart.remove_item(1)
        assert len(cart_store) == 0

    @pytest.mark.asyncio
    async def test_clear(self, cart):
        await cart.add_item(1, 1)
        await cart.add_item(2, 3)
        await cart.clear()
        assert await cart.get_lines() == []
        assert await cart.total_quantity() == 0

    @pytest.mark.asyncio
    async def test_total_quantity(self, cart):
        await cart.add_item(1, 2)
        await cart.add_item(2, 3)
        assert await cart.total_quantity() == 5


class TestSessions:
    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, cart_store):
        alice = ShoppingCart("alice", cart_store)
        bob = ShoppingCart("bob", cart_store)
        await alice.add_item(1, 1)
        assert await bob.get_lines() == []

    @pytest.mark.asyncio
    async def test_same_session_shares_cart(self, cart_store):
        await ShoppingCart("s", cart_store).add_item(1, 2)
        assert await ShoppingCart("s", cart_store).get_lines() == [CartLine(1, 2)]

    @pytest.mark.asyncio
    async def test_expired_session_is_discarded(self):
        now = [1000.0]
        store = MemoryCartStore(ttl_seconds=60, clock=lambda: now[0])
        cart = ShoppingCart("s", store)
        await cart.add_item(1, 1)

        now[0] += 59
        assert await cart.get_lines() == [CartLine(1, 1)]

        now[0] += 61
        assert await cart.get_lines() == []

    @pytest.mark.asyncio
    async def test_writes_refresh_ttl(self):
        now = [0.0]
        store = MemoryCartStore(ttl_seconds=60, clock=lambda: now[0])
        cart = ShoppingCart("s", store)
        await cart.add_item(1, 1)
        now[0] = 50
        await cart.add_item(1, 1)
        now[0] = 100
        assert await cart.get_lines() == [CartLine(1, 2)]
