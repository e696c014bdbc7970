import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from .config import FLAT_SHIPPING_FEE, FREE_SHIPPING_THRESHOLD, IMPORT_CHARGE_RATE
from .core import CartLineOut, CartSummaryOut, round_money
from .database import _locked
from .errors import BadRequest, NotFound
from .models import CartItem
from .repositories import CartRepository, ProductRepository

log = logging.getLogger(__name__)

# This file contains the cart logic. Every mutation for a session runs under
# the session's lock so the stock check and the write cannot interleave.


def _shipping_for(subtotal: Decimal) -> Decimal:
    return Decimal("0") if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_FEE

def _check_quantity(quantity: int) -> None:
    if quantity is None or quantity <= 0:
        raise BadRequest("Quantity must be greater than zero")


def add_to_cart(db: Session, session_id: str, product_id: str, quantity: int,
                selected_size: Optional[str] = None,
                selected_color: Optional[str] = None) -> CartItem:
    _check_quantity(quantity)

    with _locked(f"cart:{session_id}"):
        product = ProductRepository(db).find_by_id(product_id)
        if not product or not product.is_active:
            raise NotFound("Product not found or inactive")
        if product.stock < quantity:
            raise BadRequest("Insufficient stock available")

        carts = CartRepository(db)
        existing = carts.find_line(session_id, product_id, selected_size, selected_color)
        if existing:
            new_quantity = existing.quantity + quantity
            if product.stock < new_quantity:
                raise BadRequest("Insufficient stock for requested quantity")
            carts.update_quantity(existing, new_quantity)
            item_id = existing.id
        else:
            item = carts.create(
                session_id=session_id,
                product_id=product_id,
                quantity=quantity,
                selected_size=selected_size,
                selected_color=selected_color,
                price=product.price,
            )
            item_id = item.id
        db.commit()

    log.info("session %s: added %d x %s", session_id, quantity, product_id)
    return carts.find_with_product(item_id)


def get_cart(db: Session, session_id: str) -> CartSummaryOut:
    items = CartRepository(db).find_by_session(session_id)

    subtotal = sum((item.price * item.quantity for item in items), Decimal("0"))
    total_items = sum(item.quantity for item in items)
    shipping = _shipping_for(subtotal)
    import_charges = subtotal * IMPORT_CHARGE_RATE
    total = subtotal + shipping + import_charges

    lines = [
        CartLineOut(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product.name,
            product_image=item.product.image,
            product_brand=item.product.brand,
            product_model=item.product.model,
            quantity=item.quantity,
            price=item.price,
            total_price=round_money(item.price * item.quantity),
            selected_size=item.selected_size,
            selected_color=item.selected_color,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )
        for item in items
    ]
    return CartSummaryOut(
        total_items=total_items,
        subtotal=round_money(subtotal),
        shipping=round_money(shipping),
        import_charges=round_money(import_charges),
        total=round_money(total),
        items=lines,
    )


def update_cart_item(db: Session, session_id: str, item_id: str, quantity: int,
                     selected_size: Optional[str] = None,
                     selected_color: Optional[str] = None) -> CartItem:
    _check_quantity(quantity)

    with _locked(f"cart:{session_id}"):
        carts = CartRepository(db)
        item = carts.find_with_product(item_id)
        if not item or item.session_id != session_id:
            raise NotFound("Cart item not found")
        if item.product.stock < quantity:
            raise BadRequest("Insufficient stock for requested quantity")

        changes = {"quantity": quantity}
        if selected_size is not None:
            changes["selected_size"] = selected_size
        if selected_color is not None:
            changes["selected_color"] = selected_color
        if len(changes) > 1:
            clash = carts.find_line(session_id, item.product_id,
                                    changes.get("selected_size", item.selected_size),
                                    changes.get("selected_color", item.selected_color))
            if clash and clash.id != item.id:
                raise BadRequest("Cart already holds this product with the same size and color")

        carts.update(item, changes)
        db.commit()

    log.info("session %s: item %s set to %d", session_id, item_id, quantity)
    return carts.find_with_product(item_id)


def remove_from_cart(db: Session, session_id: str, item_id: str) -> None:
    with _locked(f"cart:{session_id}"):
        carts = CartRepository(db)
        item = carts.find_in_session(item_id, session_id)
        if not item:
            raise NotFound("Cart item not found")
        carts.delete(item)
        db.commit()
    log.info("session %s: removed item %s", session_id, item_id)


def clear_cart(db: Session, session_id: str) -> None:
    with _locked(f"cart:{session_id}"):
        removed = CartRepository(db).clear(session_id)
        db.commit()
    log.info("session %s: cleared %d item(s)", session_id, removed)


def get_cart_item_count(db: Session, session_id: str) -> int:
    return CartRepository(db).count(session_id)

def get_cart_total(db: Session, session_id: str) -> Decimal:
    return round_money(CartRepository(db).total(session_id))

def estimate_shipping(db: Session, session_id: str) -> Decimal:
    return round_money(_shipping_for(CartRepository(db).total(session_id)))


def generate_session_id() -> str:
    return str(uuid.uuid4())
