# tests/test_api.py
from storefront.models import UserRole


def _token(client, make_user, role=UserRole.ADMIN, email="admin@example.com"):
    make_user(email=email, role=role)
    r = client.post("/auth/login", json={"email": email, "password": "secret123"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['data']['accessToken']}"}


def _session(client):
    r = client.post("/cart/session")
    assert r.status_code == 201
    return {"x-session-id": r.json()["data"]["sessionId"]}


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "OK"

def test_register_envelope_and_conflict(client):
    payload = {"email": "new@example.com", "password": "secret123", "firstName": "New", "lastName": "User"}
    r = client.post("/auth/register", json=payload)
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["statusCode"] == 201
    assert "timestamp" in body
    assert body["data"]["user"]["firstName"] == "New"
    assert "password" not in body["data"]["user"]

    r = client.post("/auth/register", json=payload)
    assert r.status_code == 409
    body = r.json()
    assert body["success"] is False
    assert body["statusCode"] == 409
    assert body["error"] == "Conflict"

def test_register_validation_error(client):
    r = client.post("/auth/register", json={"email": "bad", "password": "123", "firstName": "A", "lastName": "B"})
    assert r.status_code == 400
    fields = {e["field"] for e in r.json()["error"]}
    assert {"email", "password"} <= fields

def test_profile(client, make_user):
    headers = _token(client, make_user, role=UserRole.USER, email="jane@example.com")
    r = client.get("/auth/profile", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["email"] == "jane@example.com"

    assert client.get("/auth/profile").status_code == 401
    assert client.get("/auth/profile", headers={"Authorization": "Bearer junk"}).status_code == 401

def test_product_mutations_are_admin_only(client, make_user):
    payload = {"name": "Runner", "brand": "Nike", "model": "Air Max", "price": 80,
               "originalPrice": 100, "stock": 5}
    assert client.post("/products", json=payload).status_code == 401

    user_headers = _token(client, make_user, role=UserRole.USER, email="jane@example.com")
    assert client.post("/products", json=payload, headers=user_headers).status_code == 403

    admin = _token(client, make_user)
    r = client.post("/products", json=payload, headers=admin)
    assert r.status_code == 201
    product = r.json()["data"]
    assert product["discountPercentage"] == 20.0
    assert product["sku"].startswith("NIK-AIR-")

    r = client.patch(f"/products/{product['id']}", json={"price": 50}, headers=admin)
    assert r.json()["data"]["discountPercentage"] == 50.0

    r = client.post(f"/products/{product['id']}/stock/decrease", json={"quantity": 9}, headers=admin)
    assert r.status_code == 400
    r = client.post(f"/products/{product['id']}/stock/increase", json={"quantity": 5}, headers=admin)
    assert r.json()["data"]["stock"] == 10

    assert client.delete(f"/products/{product['id']}", headers=admin).status_code == 200
    assert client.get(f"/products/{product['id']}").status_code == 404

def test_product_listing(client, make_product):
    for i in range(5):
        make_product(name=f"Shoe {i}", price=f"{10 * (i + 1)}.00")

    r = client.get("/products", params={"limit": 2, "page": 2, "sortBy": "price", "sortOrder": "asc"})
    assert r.status_code == 200
    body = r.json()
    assert [p["name"] for p in body["data"]] == ["Shoe 2", "Shoe 3"]
    assert body["meta"] == {"total": 5, "page": 2, "limit": 2, "totalPages": 3}

    r = client.get("/products", params={"minPrice": 25, "maxPrice": 45})
    assert {p["name"] for p in r.json()["data"]} == {"Shoe 2", "Shoe 3"}

    assert client.get("/products", params={"sortBy": "nonsense"}).status_code == 400
    assert client.get("/products", params={"limit": 0}).status_code == 400
    assert client.get("/products/search", params={"q": "shoe 4"}).json()["data"][0]["name"] == "Shoe 4"
    assert len(client.get("/products/brand/Nike").json()["data"]) == 5

def test_cart_requires_session_header(client):
    for method, path in [("get", "/cart"), ("get", "/cart/count"), ("get", "/cart/total"),
                         ("delete", "/cart"), ("delete", "/cart/abc")]:
        r = getattr(client, method)(path)
        assert r.status_code == 400
        assert r.json()["message"] == "Session ID is required"

def test_cart_flow(client, make_product):
    product = make_product(price="99.99", stock=5)
    headers = _session(client)

    r = client.post("/cart", json={"productId": product.id, "quantity": 2, "selectedSize": "9"},
                    headers=headers)
    assert r.status_code == 201
    item = r.json()["data"]
    assert item["product"]["name"] == product.name
    assert item["price"] == 99.99

    r = client.post("/cart", json={"productId": product.id, "quantity": 4, "selectedSize": "9"},
                    headers=headers)
    assert r.status_code == 400

    cart = client.get("/cart", headers=headers).json()["data"]
    assert cart["totalItems"] == 2
    assert cart["subtotal"] == 199.98
    assert cart["shipping"] == 40.0
    assert cart["importCharges"] == 20.0
    assert cart["total"] == 259.98
    assert cart["items"][0]["productBrand"] == "Nike"

    assert client.get("/cart/count", headers=headers).json()["data"] == {"count": 1}
    assert client.get("/cart/total", headers=headers).json()["data"] == {"total": 199.98}

    r = client.patch(f"/cart/{item['id']}", json={"quantity": 0}, headers=headers)
    assert r.status_code == 400
    r = client.patch(f"/cart/{item['id']}", json={"quantity": 3}, headers=headers)
    assert r.json()["data"]["quantity"] == 3
    r = client.patch(f"/cart/{item['id']}", json={"quantity": 3}, headers={"x-session-id": "someone-else"})
    assert r.status_code == 404

    assert client.delete(f"/cart/{item['id']}", headers=headers).status_code == 200
    assert client.delete(f"/cart/{item['id']}", headers=headers).status_code == 404
    assert client.delete("/cart", headers=headers).status_code == 200

def test_add_missing_product_is_not_found(client):
    r = client.post("/cart", json={"productId": "missing", "quantity": 1}, headers={"x-session-id": "s"})
    assert r.status_code == 404
    assert r.json()["success"] is False

def test_categories(client, make_user, make_product):
    admin = _token(client, make_user)
    r = client.post("/categories", json={"name": "Running", "icon": "🏃"}, headers=admin)
    assert r.status_code == 201
    category_id = r.json()["data"]["id"]

    product = make_product(category_id=category_id)
    listed = client.get(f"/products/category/{category_id}").json()["data"]
    assert [p["id"] for p in listed] == [product.id]
    assert listed[0]["category"]["name"] == "Running"

    assert client.delete(f"/categories/{category_id}", headers=admin).status_code == 200
    assert client.get(f"/products/{product.id}").json()["data"]["categoryId"] is None
