# storefront/main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import auth, cart, products
from .config import API_VERSION, CORS_ORIGINS, LOG_LEVEL, PORT, SEED_ON_STARTUP
from .core import (
    AddToCartIn, CartItemOut, CategoryIn, CategoryOut, LoginIn, ProductIn, ProductOut,
    ProductPatch, ProductQuery, RegisterIn, StockIn, UpdateCartItemIn, UserOut,
)
from .database import SessionLocal, get_db, init_db
from .errors import BadRequest
from .models import UserRole
from .responses import error, success

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if SEED_ON_STARTUP:
        from .seed import seed_database
        with SessionLocal() as db:
            seed_database(db)
    log.info("storefront API %s ready", API_VERSION)
    yield


app = FastAPI(title="storefront API", version=API_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

admin_only = Depends(auth.require_roles(UserRole.ADMIN))


# ---------------------------
# Error envelope
# ---------------------------
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    phrase = HTTPStatus(exc.status_code).phrase
    return error(str(exc.detail), exc.status_code, phrase, headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = [
        {"field": ".".join(str(p) for p in e["loc"] if p != "body"), "message": e["msg"]}
        for e in exc.errors()
    ]
    return error("Validation failed", 400, problems)

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return error("Internal server error", 500, str(exc))


def session_id_header(x_session_id: Optional[str] = Header(None, alias="x-session-id")) -> str:
    if not x_session_id:
        raise BadRequest("Session ID is required")
    return x_session_id


# ---------------------------
# Health
# ---------------------------
@app.get("/")
async def health():
    return {
        "status": "OK",
        "message": "E-commerce API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
    }


# ---------------------------
# Auth endpoints
# ---------------------------
@app.post("/auth/register", status_code=201)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    result = auth.register(db, payload.email, payload.password,
                           payload.first_name, payload.last_name, payload.role)
    return success("User registered successfully", 201, result)

@app.post("/auth/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    result = auth.login(db, payload.email, payload.password)
    return success("Login successful", 200, result)

@app.get("/auth/profile")
def profile(user: UserOut = Depends(auth.get_current_user)):
    return success("Profile retrieved successfully", 200, user)


# ---------------------------
# Product endpoints
# ---------------------------
@app.post("/products", status_code=201)
def create_product(payload: ProductIn, db: Session = Depends(get_db), _=admin_only):
    product = products.create_product(db, payload)
    return success("Product created successfully", 201, ProductOut.model_validate(product))

@app.get("/products")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category_id: Optional[str] = Query(None, alias="categoryId"),
    brand: Optional[str] = None,
    color: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[float] = Query(None, ge=0, alias="maxPrice"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("DESC", alias="sortOrder", pattern="(?i)^(asc|desc)$"),
    db: Session = Depends(get_db),
):
    query = ProductQuery(
        page=page, limit=limit, search=search, category_id=category_id, brand=brand,
        color=color, min_price=min_price, max_price=max_price,
        sort_by=sort_by, sort_order=sort_order.upper(),
    )
    items, meta = products.find_all_products(db, query)
    return success("Products retrieved successfully", 200,
                   [ProductOut.model_validate(p) for p in items], meta)

@app.get("/products/featured")
def featured_products(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    items = products.find_featured_products(db, limit)
    return success("Featured products retrieved successfully", 200,
                   [ProductOut.model_validate(p) for p in items])

@app.get("/products/sale")
def sale_products(limit: int = Query(10, ge=1, le=100), db: Session = Depends(get_db)):
    items = products.find_sale_products(db, limit)
    return success("Sale products retrieved successfully", 200,
                   [ProductOut.model_validate(p) for p in items])

@app.get("/products/search")
def search_products(q: str = Query(..., min_length=1), limit: int = Query(10, ge=1, le=100),
                    db: Session = Depends(get_db)):
    items = products.search_products(db, q, limit)
    return success("Search completed successfully", 200,
                   [ProductOut.model_validate(p) for p in items])

@app.get("/products/category/{category_id}")
def products_by_category(category_id: str, limit: int = Query(10, ge=1, le=100),
                         db: Session = Depends(get_db)):
    items = products.find_products_by_category(db, category_id, limit)
    return success("Products retrieved successfully", 200,
                   [ProductOut.model_validate(p) for p in items])

@app.get("/products/brand/{brand}")
def products_by_brand(brand: str, limit: int = Query(10, ge=1, le=100),
                      db: Session = Depends(get_db)):
    items = products.find_products_by_brand(db, brand, limit)
    return success("Products retrieved successfully", 200,
                   [ProductOut.model_validate(p) for p in items])

@app.get("/products/{product_id}")
def get_product(product_id: str, db: Session = Depends(get_db)):
    product = products.find_product_by_id(db, product_id)
    return success("Product retrieved successfully", 200, ProductOut.model_validate(product))

@app.patch("/products/{product_id}")
def update_product(product_id: str, payload: ProductPatch, db: Session = Depends(get_db),
                   _=admin_only):
    product = products.update_product(db, product_id, payload)
    return success("Product updated successfully", 200, ProductOut.model_validate(product))

@app.delete("/products/{product_id}")
def delete_product(product_id: str, db: Session = Depends(get_db), _=admin_only):
    products.delete_product(db, product_id)
    return success("Product deleted successfully", 200)

@app.patch("/products/{product_id}/stock")
def set_stock(product_id: str, payload: StockIn, db: Session = Depends(get_db), _=admin_only):
    product = products.update_stock(db, product_id, payload.quantity)
    return success("Stock updated successfully", 200, {"stock": product.stock})

@app.post("/products/{product_id}/stock/increase")
def increase_stock(product_id: str, payload: StockIn, db: Session = Depends(get_db),
                   _=admin_only):
    product = products.increase_stock(db, product_id, payload.quantity)
    return success("Stock increased successfully", 200, {"stock": product.stock})

@app.post("/products/{product_id}/stock/decrease")
def decrease_stock(product_id: str, payload: StockIn, db: Session = Depends(get_db),
                   _=admin_only):
    product = products.decrease_stock(db, product_id, payload.quantity)
    return success("Stock decreased successfully", 200, {"stock": product.stock})


# ---------------------------
# Category endpoints
# ---------------------------
@app.get("/categories")
def list_categories(db: Session = Depends(get_db)):
    items = products.list_categories(db)
    return success("Categories retrieved successfully", 200,
                   [CategoryOut.model_validate(c) for c in items])

@app.post("/categories", status_code=201)
def create_category(payload: CategoryIn, db: Session = Depends(get_db), _=admin_only):
    category = products.create_category(db, payload)
    return success("Category created successfully", 201, CategoryOut.model_validate(category))

@app.delete("/categories/{category_id}")
def delete_category(category_id: str, db: Session = Depends(get_db), _=admin_only):
    products.delete_category(db, category_id)
    return success("Category deleted successfully", 200)


# ---------------------------
# Cart endpoints
# ---------------------------
@app.post("/cart/session", status_code=201)
async def new_session():
    return success("Session ID generated successfully", 201, {"sessionId": cart.generate_session_id()})

@app.post("/cart", status_code=201)
def add_to_cart(payload: AddToCartIn, session_id: str = Depends(session_id_header),
                db: Session = Depends(get_db)):
    item = cart.add_to_cart(db, session_id, payload.product_id, payload.quantity,
                            payload.selected_size, payload.selected_color)
    return success("Item added to cart successfully", 201, CartItemOut.model_validate(item))

@app.get("/cart")
def view_cart(session_id: str = Depends(session_id_header), db: Session = Depends(get_db)):
    summary = cart.get_cart(db, session_id)
    return success("Cart retrieved successfully", 200, summary)

@app.get("/cart/count")
def cart_count(session_id: str = Depends(session_id_header), db: Session = Depends(get_db)):
    count = cart.get_cart_item_count(db, session_id)
    return success("Cart item count retrieved successfully", 200, {"count": count})

@app.get("/cart/total")
def cart_total(session_id: str = Depends(session_id_header), db: Session = Depends(get_db)):
    total = cart.get_cart_total(db, session_id)
    return success("Cart total retrieved successfully", 200, {"total": float(total)})

@app.get("/cart/shipping")
def cart_shipping(session_id: str = Depends(session_id_header), db: Session = Depends(get_db)):
    shipping = cart.estimate_shipping(db, session_id)
    return success("Shipping estimated successfully", 200, {"shipping": float(shipping)})

@app.patch("/cart/{item_id}")
def update_cart_item(item_id: str, payload: UpdateCartItemIn,
                     session_id: str = Depends(session_id_header),
                     db: Session = Depends(get_db)):
    item = cart.update_cart_item(db, session_id, item_id, payload.quantity,
                                 payload.selected_size, payload.selected_color)
    return success("Cart item updated successfully", 200, CartItemOut.model_validate(item))

@app.delete("/cart/{item_id}")
def remove_from_cart(item_id: str, session_id: str = Depends(session_id_header),
                     db: Session = Depends(get_db)):
    cart.remove_from_cart(db, session_id, item_id)
    return success("Item removed from cart successfully", 200)

@app.delete("/cart")
def clear_cart(session_id: str = Depends(session_id_header), db: Session = Depends(get_db)):
    cart.clear_cart(db, session_id)
    return success("Cart cleared successfully", 200)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=PORT)
