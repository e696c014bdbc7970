import logging
import math
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .core import (
    SORTABLE_FIELDS, CategoryIn, ProductIn, ProductPatch, ProductQuery,
    _discount_percentage, _generate_sku,
)
from .database import _locked
from .errors import BadRequest, NotFound
from .models import Category, Product
from .repositories import CategoryRepository, ProductRepository

log = logging.getLogger(__name__)

# This file contains the catalog logic: products, stock and categories.


def _get_or_404(repo: ProductRepository, product_id: str) -> Product:
    product = repo.find_by_id(product_id)
    if not product:
        raise NotFound("Product not found")
    return product

def _check_category(db: Session, category_id) -> None:
    if category_id and not CategoryRepository(db).find_by_id(category_id):
        raise BadRequest("Category not found")


# Products
def create_product(db: Session, payload: ProductIn) -> Product:
    data = payload.model_dump(exclude_none=True)
    _check_category(db, data.get("category_id"))

    price, original_price = data.get("price"), data.get("original_price")
    if price is not None and original_price:
        data["discount_percentage"] = _discount_percentage(price, original_price)

    if not data.get("sku"):
        data["sku"] = _generate_sku(data["brand"], data["model"])

    repo = ProductRepository(db)
    try:
        product = repo.create(**data)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise BadRequest(f"Failed to create product: {e.orig}")
    log.info("created product %s (%s)", product.id, product.sku)
    return repo.find_with_details(product.id)

def update_product(db: Session, product_id: str, payload: ProductPatch) -> Product:
    repo = ProductRepository(db)
    product = _get_or_404(repo, product_id)

    data = payload.model_dump(exclude_unset=True)
    if "category_id" in data:
        _check_category(db, data["category_id"])

    if data.get("price") is not None or data.get("original_price") is not None:
        original_price = data.get("original_price")
        if original_price is None:
            original_price = product.original_price
        price = data.get("price")
        if price is None:
            price = product.price
        if original_price is not None and price is not None and original_price > price:
            data["discount_percentage"] = _discount_percentage(price, original_price)

    try:
        repo.update(product, data)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise BadRequest(f"Failed to update product: {e.orig}")
    log.info("updated product %s: %s", product_id, sorted(data))
    return repo.find_with_details(product_id)

def find_all_products(db: Session, query: ProductQuery) -> Tuple[List[Product], Dict[str, Any]]:
    if query.sort_by not in SORTABLE_FIELDS:
        raise BadRequest(f"Cannot sort by '{query.sort_by}'")
    products, total = ProductRepository(db).find_with_filters(query)
    meta = {
        "total": total,
        "page": query.page,
        "limit": query.limit,
        "totalPages": math.ceil(total / query.limit),
    }
    return products, meta

def find_product_by_id(db: Session, product_id: str) -> Product:
    product = ProductRepository(db).find_with_details(product_id)
    if not product:
        raise NotFound("Product not found")
    return product

def delete_product(db: Session, product_id: str) -> None:
    repo = ProductRepository(db)
    product = _get_or_404(repo, product_id)
    repo.delete(product)
    db.commit()
    log.info("deleted product %s", product_id)

def find_featured_products(db: Session, limit: int = 10) -> List[Product]:
    return list(ProductRepository(db).find_featured(limit))

def find_sale_products(db: Session, limit: int = 10) -> List[Product]:
    return list(ProductRepository(db).find_sale(limit))

def find_products_by_category(db: Session, category_id: str, limit: int = 10) -> List[Product]:
    return list(ProductRepository(db).find_by_category(category_id, limit))

def find_products_by_brand(db: Session, brand: str, limit: int = 10) -> List[Product]:
    return list(ProductRepository(db).find_by_brand(brand, limit))

def search_products(db: Session, term: str, limit: int = 10) -> List[Product]:
    products, _ = find_all_products(db, ProductQuery(search=term, limit=limit, page=1))
    return products


# Stock
def update_stock(db: Session, product_id: str, quantity: int) -> Product:
    repo = ProductRepository(db)
    with _locked(f"product:{product_id}"):
        product = _get_or_404(repo, product_id)
        repo.update_stock(product_id, quantity)
        db.commit()
        db.refresh(product)
    log.info("stock for %s set to %d", product_id, quantity)
    return product

def decrease_stock(db: Session, product_id: str, quantity: int) -> Product:
    repo = ProductRepository(db)
    with _locked(f"product:{product_id}"):
        product = _get_or_404(repo, product_id)
        if product.stock < quantity or not repo.decrease_stock(product_id, quantity):
            db.rollback()
            raise BadRequest("Insufficient stock")
        db.commit()
        db.refresh(product)
    log.info("stock for %s decreased by %d to %d", product_id, quantity, product.stock)
    return product

def increase_stock(db: Session, product_id: str, quantity: int) -> Product:
    repo = ProductRepository(db)
    with _locked(f"product:{product_id}"):
        product = _get_or_404(repo, product_id)
        repo.increase_stock(product_id, quantity)
        db.commit()
        db.refresh(product)
    log.info("stock for %s increased by %d to %d", product_id, quantity, product.stock)
    return product


# Categories
def list_categories(db: Session) -> List[Category]:
    return list(CategoryRepository(db).find_active())

def create_category(db: Session, payload: CategoryIn) -> Category:
    category = CategoryRepository(db).create(**payload.model_dump())
    db.commit()
    log.info("created category %s (%s)", category.id, category.name)
    return category

def delete_category(db: Session, category_id: str) -> None:
    repo = CategoryRepository(db)
    category = repo.find_by_id(category_id)
    if not category:
        raise NotFound("Category not found")
    # products keep existing with category_id nulled
    repo.delete(category)
    db.commit()
    log.info("deleted category %s", category_id)
