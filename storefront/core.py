import time
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from .models import UserRole

CENT = Decimal("0.01")

# decimals go out as JSON numbers, not strings
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case accepted on input too
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------
# Auth schemas
# ---------------------------
class RegisterIn(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    role: Optional[UserRole] = None

class LoginIn(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class UserOut(CamelModel):
    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool = True
    last_login: Optional[datetime] = None

class AuthOut(CamelModel):
    access_token: str
    user: UserOut


# ---------------------------
# Catalog schemas
# ---------------------------
class CategoryIn(CamelModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool = True

class CategoryOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    is_active: bool

class ProductIn(CamelModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Money = Field(..., ge=0)
    original_price: Optional[Money] = Field(None, ge=0)
    discount_percentage: Optional[Money] = Field(None, ge=0, le=100)
    image: Optional[str] = None
    images: Optional[List[str]] = None
    brand: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    color: Optional[str] = None
    sizes: Optional[List[str]] = None
    stock: int = Field(..., ge=0)
    status: Optional[str] = None
    sku: Optional[str] = None
    rating: Optional[Money] = Field(None, ge=0, le=5)
    review_count: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    category_id: Optional[str] = None

class ProductPatch(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[Money] = Field(None, ge=0)
    original_price: Optional[Money] = Field(None, ge=0)
    discount_percentage: Optional[Money] = Field(None, ge=0, le=100)
    image: Optional[str] = None
    images: Optional[List[str]] = None
    brand: Optional[str] = Field(None, min_length=1)
    model: Optional[str] = Field(None, min_length=1)
    color: Optional[str] = None
    sizes: Optional[List[str]] = None
    stock: Optional[int] = Field(None, ge=0)
    status: Optional[str] = None
    sku: Optional[str] = None
    rating: Optional[Money] = Field(None, ge=0, le=5)
    review_count: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    category_id: Optional[str] = None

class ProductOut(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Money
    original_price: Optional[Money] = None
    discount_percentage: Optional[Money] = None
    image: Optional[str] = None
    images: Optional[List[str]] = None
    brand: str
    model: str
    color: Optional[str] = None
    sizes: Optional[List[str]] = None
    stock: int
    status: str
    sku: Optional[str] = None
    rating: Optional[Money] = None
    review_count: int = 0
    is_active: bool
    is_featured: bool
    category_id: Optional[str] = None
    category: Optional[CategoryOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

# columns a listing may be sorted by, keyed by their wire name
SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "name": "name",
    "price": "price",
    "originalPrice": "original_price",
    "discountPercentage": "discount_percentage",
    "brand": "brand",
    "stock": "stock",
    "rating": "rating",
    "reviewCount": "review_count",
}

class ProductQuery(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    search: Optional[str] = None
    category_id: Optional[str] = None
    brand: Optional[str] = None
    color: Optional[str] = None
    min_price: Optional[Money] = Field(None, ge=0)
    max_price: Optional[Money] = Field(None, ge=0)
    sort_by: str = "createdAt"
    sort_order: Literal["ASC", "DESC"] = "DESC"

class StockIn(CamelModel):
    quantity: int = Field(..., ge=0)


# ---------------------------
# Cart schemas
# ---------------------------
class AddToCartIn(CamelModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1, le=100)
    selected_size: Optional[str] = None
    selected_color: Optional[str] = None

class UpdateCartItemIn(CamelModel):
    quantity: int = Field(..., ge=1, le=100)
    selected_size: Optional[str] = None
    selected_color: Optional[str] = None

class CartItemOut(CamelModel):
    id: str
    session_id: str
    product_id: str
    quantity: int
    selected_size: Optional[str] = None
    selected_color: Optional[str] = None
    price: Money
    product: Optional[ProductOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CartLineOut(CamelModel):
    id: str
    product_id: str
    product_name: str
    product_image: Optional[str] = None
    product_brand: str
    product_model: str
    quantity: int
    price: Money
    total_price: Money
    selected_size: Optional[str] = None
    selected_color: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CartSummaryOut(CamelModel):
    total_items: int
    subtotal: Money
    shipping: Money
    import_charges: Money
    total: Money
    items: List[CartLineOut]


# ---------------------------
# Helpers
# ---------------------------
def round_money(value) -> Decimal:
    """Round to cents, halves away from zero."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)

def _discount_percentage(price, original_price) -> Decimal:
    price, original_price = Decimal(str(price)), Decimal(str(original_price))
    return round_money((original_price - price) / original_price * 100)

def _generate_sku(brand: str, model: str, now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    brand_prefix = "".join(brand[:3].upper().split())
    model_prefix = "".join(model[:3].upper().split())
    return f"{brand_prefix}-{model_prefix}-{str(now_ms)[-6:]}"
