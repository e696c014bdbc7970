"""Demo catalogue for local runs: ``python -m storefront.seed``."""
import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from .auth import hash_password
from .core import _discount_percentage, _generate_sku
from .database import SessionLocal, init_db
from .models import Category, Product, User, UserRole

log = logging.getLogger(__name__)

CATEGORIES = [
    {"name": "Men Shoes", "description": "Shoes for men", "icon": "👟"},
    {"name": "Women Shoes", "description": "Shoes for women", "icon": "👠"},
    {"name": "Sports Shoes", "description": "Athletic and sports shoes", "icon": "🏃"},
    {"name": "Casual Shoes", "description": "Everyday casual shoes", "icon": "👞"},
]

# (name, brand, model, color, price, original price, stock, featured, category index)
PRODUCTS = [
    ("Nike Air Max 270", "Nike", "Air Max 270", "Red", "299.43", "399.99", 50, True, 0),
    ("New Balance 570", "New Balance", "570", "Grey", "299.43", "349.99", 30, True, 0),
    ("Adidas Ultraboost 22", "Adidas", "Ultraboost 22", "Black", "359.99", "419.99", 25, True, 2),
    ("Puma RS-X", "Puma", "RS-X", "White", "179.99", None, 40, False, 2),
    ("Converse Chuck Taylor All Star", "Converse", "Chuck Taylor", "Black", "89.99", "99.99", 100, False, 3),
    ("Vans Old Skool", "Vans", "Old Skool", "Black", "129.99", None, 60, False, 3),
    ("Jordan Air Jordan 1 Mid", "Jordan", "Air Jordan 1 Mid", "Red", "399.99", "449.99", 15, True, 0),
    ("Reebok Classic Leather", "Reebok", "Classic Leather", "White", "149.99", None, 35, False, 1),
]

SIZES = ["6", "6.5", "7", "7.5", "8", "8.5", "9", "9.5", "10"]

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin123"


def seed_database(db: Session) -> bool:
    """Insert the demo rows when the catalogue is empty. Returns True if anything was seeded."""
    if db.scalar(select(func.count()).select_from(Product)):
        log.info("catalogue already populated, skipping seed")
        return False

    categories = [Category(**c) for c in CATEGORIES]
    db.add_all(categories)
    db.flush()

    for name, brand, model, color, price, original, stock, featured, cat in PRODUCTS:
        product = Product(
            name=name,
            description=f"{brand} {model}",
            price=Decimal(price),
            original_price=Decimal(original) if original else None,
            discount_percentage=_discount_percentage(price, original) if original else None,
            brand=brand,
            model=model,
            color=color,
            sizes=SIZES,
            stock=stock,
            sku=_generate_sku(brand, model),
            is_featured=featured,
            category_id=categories[cat].id,
        )
        db.add(product)

    if not db.scalar(select(User).where(User.email == ADMIN_EMAIL)):
        db.add(User(
            email=ADMIN_EMAIL,
            password=hash_password(ADMIN_PASSWORD),
            first_name="Admin",
            last_name="User",
            role=UserRole.ADMIN,
        ))

    db.commit()
    log.info("seeded %d categories and %d products", len(CATEGORIES), len(PRODUCTS))
    return True


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    with SessionLocal() as session:
        seed_database(session)
