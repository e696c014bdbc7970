import os

# cheap hashes and a throwaway database for the whole run
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.auth import hash_password
from storefront.database import Base, _LOCKS, get_db, make_engine
from storefront.main import app
from storefront.models import Category, Product, User, UserRole


@pytest.fixture
def engine():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    _LOCKS.clear()
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db):
    def _make(**fields):
        data = {
            "name": "Air Max 270",
            "brand": "Nike",
            "model": "Air Max 270",
            "price": Decimal("99.99"),
            "stock": 10,
        }
        data.update(fields)
        for key in ("price", "original_price", "discount_percentage"):
            if data.get(key) is not None:
                data[key] = Decimal(str(data[key]))
        product = Product(**data)
        db.add(product)
        db.commit()
        return product
    return _make


@pytest.fixture
def make_category(db):
    def _make(name="Sports Shoes"):
        category = Category(name=name)
        db.add(category)
        db.commit()
        return category
    return _make


@pytest.fixture
def make_user(db):
    def _make(email="jane@example.com", password="secret123", role=UserRole.USER, is_active=True):
        user = User(email=email, password=hash_password(password), first_name="Jane",
                    last_name="Doe", role=role, is_active=is_active)
        db.add(user)
        db.commit()
        return user
    return _make
