"""
Shopping Cart

Per-session cart of (product_id, quantity) lines. State lives in the
configured cart store and is never durable: when the session expires
the cart is silently discarded. No stock is reserved while items sit
in the cart; stock is only checked and taken at checkout.
"""

import logging
from typing import Optional

from app.errors import InvalidQuantity
from app.services.cart.base import BaseCartStore, CartLine

logger = logging.getLogger(__name__)


class ShoppingCart:
    """
    Cart bound to one session id.

    Every operation loads the lines from the store, applies the change
    and writes them back, so two ShoppingCart objects built for the
    same session id see the same cart.

    Example:
        >>> cart = ShoppingCart("a1b2", get_cart_store())
        >>> await cart.add_item(7, 2)
        >>> await cart.add_item(7, 1)
        >>> await cart.get_lines()
        [CartLine(product_id=7, quantity=3)]
    """

    def __init__(
        self,
        session_id: str,
        store: BaseCartStore,
        max_line_quantity: Optional[int] = None,
    ):
        self.session_id = session_id
        self.store = store
        self.max_line_quantity = max_line_quantity

    async def _read(self) -> list[CartLine]:
        return [CartLine.from_dict(line) for line in await self.store.load(self.session_id)]

    async def _write(self, lines: list[CartLine]) -> None:
        if lines:
            await self.store.save(self.session_id, [line.to_dict() for line in lines])
        else:
            await self.store.delete(self.session_id)

    def _check_limit(self, quantity: int) -> None:
        if self.max_line_quantity is not None and quantity > self.max_line_quantity:
            raise InvalidQuantity(
                quantity,
                f"Quantity {quantity} exceeds the limit of {self.max_line_quantity} per item",
            )

    async def add_item(self, product_id: int, quantity: int) -> CartLine:
        """
        Add units of a product. An existing line is incremented instead
        of duplicated.

        Raises:
            InvalidQuantity: If quantity <= 0 or the line would exceed the limit
        """
        if quantity <= 0:
            raise InvalidQuantity(quantity, "Quantity must be greater than 0")

        lines = await self._read()
        line = next((item for item in lines if item.product_id == product_id), None)

        if line is None:
            self._check_limit(quantity)
            line = CartLine(product_id=product_id, quantity=quantity)
            lines.append(line)
        else:
            self._check_limit(line.quantity + quantity)
            line.quantity += quantity

        await self._write(lines)
        logger.debug(f"Cart {self.session_id}: product #{product_id} -> {line.quantity}")
        return line

    async def update_quantity(self, product_id: int, quantity: int) -> Optional[CartLine]:
        """
        Set the quantity of a product. Zero removes the line.

        Returns:
            The updated line, or None if the line was removed

        Raises:
            InvalidQuantity: If quantity < 0 or exceeds the limit
        """
        if quantity < 0:
            raise InvalidQuantity(quantity, "Quantity cannot be negative")
        if quantity == 0:
            await self.remove_item(product_id)
            return None

        self._check_limit(quantity)
        lines = await self._read()
        line = next((item for item in lines if item.product_id == product_id), None)

        if line is None:
            line = CartLine(product_id=product_id, quantity=quantity)
            lines.append(line)
        else:
            line.quantity = quantity

        await self._write(lines)
        logger.debug(f"Cart {self.session_id}: product #{product_id} set to {quantity}")
        return line

    async def remove_item(self, product_id: int) -> None:
        """Drop a product's line. Removing an absent product is a no-op."""
        lines = await self._read()
        remaining = [item for item in lines if item.product_id != product_id]
        if len(remaining) != len(lines):
            await self._write(remaining)
            logger.debug(f"Cart {self.session_id}: product #{product_id} removed")

    async def get_lines(self) -> list[CartLine]:
        """Return the lines in the order they were first added."""
        return await self._read()

    async def total_quantity(self) -> int:
        return sum(line.quantity for line in await self._read())

    async def clear(self) -> None:
        await self.store.delete(self.session_id)
        logger.debug(f"Cart {self.session_id}: cleared")
