# sdk/storefront.py
import httpx
import requests
from typing import Any, Dict, Optional


class StoreClient:
    def __init__(self, base_url: str = "http://localhost:8085", token: Optional[str] = None,
                 session_id: Optional[str] = None, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout
        if token:
            self.set_token(token)
        if session_id:
            self.set_session_id(session_id)

    def set_token(self, token: str):
        self.session.headers.update({"Authorization": f"Bearer {token}"})

    def set_session_id(self, session_id: str):
        self.session.headers.update({"x-session-id": session_id})

    @property
    def session_id(self) -> Optional[str]:
        return self.session.headers.get("x-session-id")

    def _data(self, r: requests.Response) -> Any:
        # unwrap the {success, data, ...} envelope
        r.raise_for_status()
        return r.json().get("data")

    def _get(self, path: str, **params):
        params = {k: v for k, v in params.items() if v is not None}
        r = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        return self._data(r)

    def health(self):
        r = self.session.get(f"{self.base_url}/", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Auth
    def register(self, email: str, password: str, first_name: str, last_name: str,
                 role: Optional[str] = None):
        payload = {"email": email, "password": password, "firstName": first_name, "lastName": last_name}
        if role:
            payload["role"] = role
        r = self.session.post(f"{self.base_url}/auth/register", json=payload, timeout=self.timeout)
        data = self._data(r)
        self.set_token(data["accessToken"])
        return data

    def login(self, email: str, password: str):
        r = self.session.post(f"{self.base_url}/auth/login",
                              json={"email": email, "password": password}, timeout=self.timeout)
        data = self._data(r)
        self.set_token(data["accessToken"])
        return data

    def profile(self):
        return self._get("/auth/profile")

    # Products
    def list_products(self, page: int = 1, limit: int = 10, search: Optional[str] = None,
                      category_id: Optional[str] = None, brand: Optional[str] = None,
                      color: Optional[str] = None, min_price: Optional[float] = None,
                      max_price: Optional[float] = None, sort_by: Optional[str] = None,
                      sort_order: Optional[str] = None) -> Dict[str, Any]:
        params = {
            "page": page, "limit": limit, "search": search, "categoryId": category_id,
            "brand": brand, "color": color, "minPrice": min_price, "maxPrice": max_price,
            "sortBy": sort_by, "sortOrder": sort_order,
        }
        r = self.session.get(f"{self.base_url}/products",
                             params={k: v for k, v in params.items() if v is not None},
                             timeout=self.timeout)
        r.raise_for_status()
        body = r.json()
        return {"items": body.get("data", []), "meta": body.get("meta", {})}

    def featured_products(self, limit: int = 10):
        return self._get("/products/featured", limit=limit)

    def sale_products(self, limit: int = 10):
        return self._get("/products/sale", limit=limit)

    def search_products(self, term: str, limit: int = 10):
        return self._get("/products/search", q=term, limit=limit)

    def products_by_category(self, category_id: str, limit: int = 10):
        return self._get(f"/products/category/{category_id}", limit=limit)

    def products_by_brand(self, brand: str, limit: int = 10):
        return self._get(f"/products/brand/{brand}", limit=limit)

    def get_product(self, product_id: str):
        return self._get(f"/products/{product_id}")

    def create_product(self, **fields):
        r = self.session.post(f"{self.base_url}/products", json=fields, timeout=self.timeout)
        return self._data(r)

    def update_product(self, product_id: str, **fields):
        r = self.session.patch(f"{self.base_url}/products/{product_id}", json=fields, timeout=self.timeout)
        return self._data(r)

    def delete_product(self, product_id: str):
        r = self.session.delete(f"{self.base_url}/products/{product_id}", timeout=self.timeout)
        return self._data(r)

    def list_categories(self):
        return self._get("/categories")

    # Cart
    def new_session(self) -> str:
        r = self.session.post(f"{self.base_url}/cart/session", timeout=self.timeout)
        session_id = self._data(r)["sessionId"]
        self.set_session_id(session_id)
        return session_id

    def add_to_cart(self, product_id: str, quantity: int = 1, size: Optional[str] = None,
                    color: Optional[str] = None):
        payload = {"productId": product_id, "quantity": quantity}
        if size:
            payload["selectedSize"] = size
        if color:
            payload["selectedColor"] = color
        r = self.session.post(f"{self.base_url}/cart", json=payload, timeout=self.timeout)
        return self._data(r)

    def view_cart(self):
        return self._get("/cart")

    def update_cart_item(self, item_id: str, quantity: int):
        r = self.session.patch(f"{self.base_url}/cart/{item_id}", json={"quantity": quantity},
                               timeout=self.timeout)
        return self._data(r)

    def remove_from_cart(self, item_id: str):
        r = self.session.delete(f"{self.base_url}/cart/{item_id}", timeout=self.timeout)
        return self._data(r)

    def clear_cart(self):
        r = self.session.delete(f"{self.base_url}/cart", timeout=self.timeout)
        return self._data(r)

    def cart_count(self) -> int:
        return self._get("/cart/count")["count"]

    def cart_total(self) -> float:
        return self._get("/cart/total")["total"]

    # Async add (example); returns the raw response so callers can inspect 400s
    async def add_to_cart_async(self, product_id: str, quantity: int = 1,
                                session_id: Optional[str] = None):
        headers = {"x-session-id": session_id or self.session_id or ""}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(f"{self.base_url}/cart",
                                     json={"productId": product_id, "quantity": quantity},
                                     headers=headers)
