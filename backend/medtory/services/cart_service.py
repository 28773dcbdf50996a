# Overview: Service-layer operations for the POS cart; encapsulates business logic and database work.

"""
POS Cart Service

The cart lives server-side on the caller's SessionToken row (cart_json) so
it dies with the session and never crosses cashiers. It expires after
CART_IDLE_TIMEOUT_MINUTES without being read or changed.

Line arithmetic (all integer cents):
- gross = price_cents * quantity
- discount = round-half-up(gross * discount_rate), 0 <= rate <= 1
- rates carry at most 4 decimal places (stored on sale lines as basis points)
- total = gross - discount
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..extensions import db
from ..models import Product, SessionToken
from medtory.time_utils import utcnow
from .inventory_service import current_selling_price_cents, get_quantity_on_hand


class CartError(Exception):
    """Raised for cart operation errors."""
    def __init__(self, message: str, details: dict | None = None, status: int = 400):
        super().__init__(message)
        self.details = details or {}
        self.status = status


RATE_STEP = Decimal("0.0001")


def discount_cents_for(gross_cents: int, rate: Decimal) -> int:
    return int((Decimal(gross_cents) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def rate_to_basis_points(rate: Decimal) -> int:
    return int(rate / RATE_STEP)


def basis_points_to_rate(basis_points: int) -> Decimal:
    return (Decimal(basis_points) * RATE_STEP).normalize()


@dataclass
class CartLine:
    product_id: int
    product_name: str
    price_cents: int
    quantity: int
    discount_rate: Decimal = Decimal("0")

    @property
    def gross_cents(self) -> int:
        return self.price_cents * self.quantity

    @property
    def discount_cents(self) -> int:
        return discount_cents_for(self.gross_cents, self.discount_rate)

    @property
    def total_cents(self) -> int:
        return self.gross_cents - self.discount_cents

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "price_cents": self.price_cents,
            "quantity": self.quantity,
            "discount_rate": str(self.discount_rate),
            "gross_cents": self.gross_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        return cls(
            product_id=int(data["product_id"]),
            product_name=data["product_name"],
            price_cents=int(data["price_cents"]),
            quantity=int(data["quantity"]),
            discount_rate=Decimal(data.get("discount_rate") or "0"),
        )


def _is_expired(session: SessionToken) -> bool:
    if session.cart_updated_at is None:
        return False
    idle = timedelta(minutes=current_app.config["CART_IDLE_TIMEOUT_MINUTES"])
    return utcnow() - session.cart_updated_at > idle


def load_cart(session: SessionToken) -> list[CartLine]:
    """
    Current cart lines; an idle-expired cart is dropped and comes back empty.

    Reading a live cart restarts its idle timer.
    """
    if not session.cart_json:
        return []
    if _is_expired(session):
        clear_cart(session)
        return []
    session.cart_updated_at = utcnow()
    db.session.commit()
    return [CartLine.from_dict(row) for row in json.loads(session.cart_json)]


def save_cart(session: SessionToken, lines: list[CartLine]) -> None:
    stage_cart(session, lines)
    db.session.commit()


def stage_cart(session: SessionToken, lines: list[CartLine]) -> None:
    """Write the cart onto the session row without committing."""
    if lines:
        session.cart_json = json.dumps([
            {
                "product_id": line.product_id,
                "product_name": line.product_name,
                "price_cents": line.price_cents,
                "quantity": line.quantity,
                "discount_rate": str(line.discount_rate),
            }
            for line in lines
        ])
        session.cart_updated_at = utcnow()
    else:
        session.cart_json = None
        session.cart_updated_at = None


def clear_cart(session: SessionToken) -> None:
    save_cart(session, [])


def cart_summary(lines: list[CartLine]) -> dict:
    return {
        "lines": [line.to_dict() for line in lines],
        "item_count": sum(line.quantity for line in lines),
        "gross_cents": sum(line.gross_cents for line in lines),
        "discount_cents": sum(line.discount_cents for line in lines),
        "total_cents": sum(line.total_cents for line in lines),
    }


def add_item(session: SessionToken, *, product_id: int, quantity: int, discount_rate: Decimal = Decimal("0")) -> list[CartLine]:
    """
    Add `quantity` of a product to the cart.

    Stock is checked against what is already in the cart plus the new
    quantity. An existing line keeps its discount and just grows.
    """
    if quantity < 1:
        raise CartError("quantity must be at least 1")
    if discount_rate < 0 or discount_rate > 1:
        raise CartError("discount_rate must be between 0 and 1")
    if discount_rate != discount_rate.quantize(RATE_STEP):
        raise CartError("discount_rate allows at most 4 decimal places")

    product = db.session.get(Product, product_id)
    if product is None or not product.is_active:
        raise CartError("Product not found", status=404)

    lines = load_cart(session)
    existing = next((line for line in lines if line.product_id == product_id), None)
    in_cart = existing.quantity if existing else 0

    available = get_quantity_on_hand(product_id)
    if in_cart + quantity > available:
        raise CartError(
            f"Not enough stock! Available: {available}",
            details={"product_id": product_id, "available": available, "in_cart": in_cart},
        )

    if existing:
        existing.quantity += quantity
    else:
        price = current_selling_price_cents(product_id)
        if price is None:
            raise CartError("Product has no price", details={"product_id": product_id})
        lines.append(CartLine(
            product_id=product.id,
            product_name=product.name,
            price_cents=price,
            quantity=quantity,
            discount_rate=discount_rate,
        ))

    save_cart(session, lines)
    return lines


def remove_item(session: SessionToken, product_id: int) -> list[CartLine]:
    lines = [line for line in load_cart(session) if line.product_id != product_id]
    save_cart(session, lines)
    return lines
