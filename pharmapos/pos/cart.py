import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from pharmapos.pos.client import ApiError, PosApiClient


DISCOUNT_NEGATIVE = "Discount cannot be negative"
DISCOUNT_TOO_LARGE = "Discount cannot exceed total amount"


class CartError(Exception):
    pass


@dataclass
class CartLine:
    product_id: int
    name: str
    price: float
    unit: str
    qty: int
    # units of this line already taken off the server's stock figure
    reserved: int = 0

    @property
    def line_total(self) -> float:
        return round(self.qty * self.price, 2)

    @property
    def pending(self) -> int:
        return self.qty - self.reserved


@dataclass
class Receipt:
    order_id: int
    lines: List[CartLine]
    subtotal: float
    discount: float
    total: float
    stock_errors: List[str] = field(default_factory=list)


class CartSession:
    """
    One till's cart.

    ``products`` is the till's local catalogue; its ``stock`` values already
    have the cart's quantities taken off. Adding to the cart only changes the
    local figure. Changing or removing a line, and checking out, write the
    local figure back with an absolute stock set.
    """

    def __init__(self, api: PosApiClient):
        self.api = api
        self.products: Dict[int, Dict[str, Any]] = {}
        self.lines: Dict[int, CartLine] = {}
        self.discount = 0.0
        self.discount_error = ""
        self.last_order_id: Optional[int] = None

    # ---------- catalogue ----------
    def load_products(self) -> List[Dict[str, Any]]:
        self.products = {}
        for row in self.api.list_products():
            self._store_product(row)

        for product_id in list(self.lines):
            if product_id not in self.products:
                logger.warning(f"Dropping cart line for missing product {product_id}")
                del self.lines[product_id]

        return list(self.products.values())

    def _store_product(self, row: Dict[str, Any]):
        product = dict(row)
        line = self.lines.get(product["id"])
        if line:
            product["stock"] = product["stock"] - line.pending
        self.products[product["id"]] = product

    def available(self, product_id: int) -> int:
        product = self.products.get(product_id)
        return product["stock"] if product else 0

    # ---------- cart lines ----------
    def select(self, product_id: int) -> Dict[str, Any]:
        product = self.products.get(product_id)
        if product is None:
            raise CartError("Product not found")
        if product["stock"] <= 0:
            raise CartError("Sorry, this product is out of stock")
        return product

    def add(self, product_id: int, qty: Optional[int] = None) -> CartLine:
        product = self.select(product_id)
        if qty is None:
            qty = product.get("default_qty") or 1

        available = product["stock"]
        if not 1 <= qty <= available:
            raise CartError(f"Quantity must be between 1 and {available}")

        line = self.lines.get(product_id)
        if line:
            line.qty += qty
        else:
            line = CartLine(
                product_id=product_id,
                name=product["name"],
                price=product["price"],
                unit=product.get("unit") or "pcs",
                qty=qty,
            )
            self.lines[product_id] = line

        product["stock"] = available - qty
        return line

    def set_quantity(self, product_id: int, new_qty: int) -> CartLine:
        line = self.lines.get(product_id)
        if line is None:
            raise CartError("Product is not in the cart")

        local_stock = self.available(product_id)
        target_qty = max(1, min(new_qty, local_stock + line.qty))
        diff = target_qty - line.qty
        if diff == 0:
            return line

        try:
            row = self.api.set_stock(product_id, local_stock - diff)
        except ApiError as e:
            logger.error(f"Stock update for product {product_id} failed: {e}")
            raise

        line.qty = target_qty
        line.reserved = target_qty
        self._store_product(row)
        return line

    def increment(self, product_id: int) -> CartLine:
        line = self.lines.get(product_id)
        if line is None:
            raise CartError("Product is not in the cart")
        return self.set_quantity(product_id, line.qty + 1)

    def decrement(self, product_id: int) -> CartLine:
        line = self.lines.get(product_id)
        if line is None:
            raise CartError("Product is not in the cart")
        return self.set_quantity(product_id, line.qty - 1)

    def remove(self, product_id: int):
        line = self.lines.get(product_id)
        if line is None:
            raise CartError("Product is not in the cart")

        if product_id not in self.products:
            del self.lines[product_id]
            return

        restored = self.available(product_id) + line.qty
        try:
            row = self.api.set_stock(product_id, restored)
        except ApiError as e:
            logger.error(f"Restoring stock for product {product_id} failed: {e}")
            raise

        del self.lines[product_id]
        self._store_product(row)

    def cancel(self):
        """Empty the cart, giving every line's quantity back to stock."""
        failed = []
        for product_id in list(self.lines):
            try:
                self.remove(product_id)
            except ApiError as e:
                failed.append(f"{self.lines[product_id].name}: {e.message}")

        if failed:
            raise CartError("Could not restore stock for " + "; ".join(failed))

        self.discount = 0.0
        self.discount_error = ""

    # ---------- totals ----------
    @property
    def subtotal(self) -> float:
        return round(sum(line.line_total for line in self.lines.values()), 2)

    @property
    def applied_discount(self) -> float:
        return min(self.discount, self.subtotal)

    @property
    def total(self) -> float:
        return round(max(0.0, self.subtotal - self.applied_discount), 2)

    def set_discount(self, value) -> float:
        try:
            amount = float(value)
        except (TypeError, ValueError):
            amount = 0.0
        if not math.isfinite(amount):
            amount = 0.0

        self.discount_error = ""
        if amount < 0:
            amount = 0.0
            self.discount_error = DISCOUNT_NEGATIVE
        elif amount > self.subtotal:
            amount = self.subtotal
            self.discount_error = DISCOUNT_TOO_LARGE

        self.discount = round(amount, 2)
        return self.discount

    # ---------- checkout ----------
    def checkout(self) -> Receipt:
        if not self.lines:
            raise CartError("Cart is empty")

        lines = list(self.lines.values())
        subtotal = self.subtotal
        discount = self.applied_discount
        total = self.total

        payload = {
            "items": [
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "quantity": line.qty,
                    "price": line.price,
                    "unit": line.unit,
                }
                for line in lines
            ],
            "subtotal": subtotal,
            "discount": discount,
            "total": total,
        }
        result = self.api.create_sale(payload)
        order_id = result["id"]
        self.last_order_id = order_id
        logger.info(f"Sale #{order_id} recorded: {len(lines)} lines, total {total}")

        # the sale stands even if a stock write fails
        stock_errors = []
        for line in lines:
            new_stock = max(0, self.available(line.product_id))
            try:
                row = self.api.set_stock(line.product_id, new_stock)
            except ApiError as e:
                logger.error(f"Sale #{order_id}: stock update for {line.name} failed: {e}")
                stock_errors.append(f"{line.name}: {e.message}")
                continue
            line.reserved = line.qty
            self.products[row["id"]] = dict(row)

        self.lines = {}
        self.discount = 0.0
        self.discount_error = ""

        return Receipt(
            order_id=order_id,
            lines=lines,
            subtotal=subtotal,
            discount=discount,
            total=total,
            stock_errors=stock_errors,
        )

    # ---------- live updates ----------
    def apply_event(self, event: Dict[str, Any]):
        event_type = event.get("type")
        data = event.get("data") or {}

        if event_type == "product_update":
            self._store_product(data["product"])
        elif event_type == "product_deleted":
            self.products.pop(int(data["id"]), None)
        elif event_type == "data_reset":
            if data.get("type") in ("all", "inventory"):
                self.load_products()
        else:
            logger.debug(f"Ignoring update of type {event_type!r}")
