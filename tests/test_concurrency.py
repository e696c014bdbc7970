# tests/test_concurrency.py
import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from storefront import auth
from storefront.database import Base, get_db, make_engine
from storefront.main import app
from storefront.models import Product
from storefront.repositories import CartRepository


@pytest.fixture
def file_db(tmp_path):
    # a real file so each request thread gets its own connection
    eng = make_engine(f"sqlite:///{tmp_path / 'store.db'}")
    Base.metadata.create_all(eng)
    factory = sessionmaker(bind=eng, autoflush=False, expire_on_commit=False)

    def _get_db():
        with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    yield factory
    app.dependency_overrides.clear()
    eng.dispose()


def test_concurrent_adds_for_last_unit(file_db, monkeypatch):
    with file_db() as db:
        product = Product(name="Last Pair", brand="Nike", model="Air Max 270",
                          price=Decimal("99.99"), stock=1)
        db.add(product)
        db.commit()
        product_id = product.id

    # hold each request between reading the cart line and writing it
    real_find_line = CartRepository.find_line

    def _slow_find_line(self, *args, **kwargs):
        line = real_find_line(self, *args, **kwargs)
        time.sleep(0.2)
        return line

    monkeypatch.setattr(CartRepository, "find_line", _slow_find_line)

    start = threading.Barrier(2)

    def _add():
        tc = TestClient(app)
        start.wait(5)
        return tc.post("/cart", json={"productId": product_id, "quantity": 1},
                       headers={"x-session-id": "shared"})

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda _: _add(), range(2)))

    statuses = sorted(r.status_code for r in results)
    assert statuses == [201, 400]

    cart = TestClient(app).get("/cart", headers={"x-session-id": "shared"}).json()["data"]
    assert cart["totalItems"] == 1
    assert len(cart["items"]) == 1


def test_slow_password_hash_does_not_stall_other_requests(client, monkeypatch):
    real_hash = auth.hash_password

    def _slow_hash(password):
        time.sleep(0.5)
        return real_hash(password)

    monkeypatch.setattr(auth, "hash_password", _slow_hash)
    body = {"email": "slow@example.com", "password": "secret123",
            "firstName": "Slow", "lastName": "Hash"}

    async def _scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            registering = asyncio.create_task(ac.post("/auth/register", json=body))
            await asyncio.sleep(0.1)
            started = time.perf_counter()
            health = await ac.get("/")
            elapsed = time.perf_counter() - started
            return await registering, health, elapsed

    registered, health, elapsed = asyncio.run(_scenario())
    assert registered.status_code == 201
    assert health.status_code == 200
    assert elapsed < 0.25
