from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session, joinedload, selectinload

from .core import SORTABLE_FIELDS, ProductQuery
from .database import Base
from .models import CartItem, Category, Product, User

ModelT = TypeVar("ModelT", bound=Base)

# Repositories flush but never commit; the calling service owns the transaction.


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class BaseRepository(Generic[ModelT]):
    model: Type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def create(self, **data: Any) -> ModelT:
        entity = self.model(**data)
        self.db.add(entity)
        self.db.flush()
        return entity

    def find_by_id(self, entity_id: str) -> Optional[ModelT]:
        return self.db.get(self.model, entity_id)

    def find_many(self, *criteria, limit: Optional[int] = None) -> Sequence[ModelT]:
        stmt = select(self.model).where(*criteria)
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.db.scalars(stmt).all()

    def update(self, entity: ModelT, data: Dict[str, Any]) -> ModelT:
        for key, value in data.items():
            setattr(entity, key, value)
        self.db.flush()
        return entity

    def delete(self, entity: ModelT) -> None:
        self.db.delete(entity)
        self.db.flush()

    def paginate(self, stmt, page: int = 1, limit: int = 10) -> Tuple[List[ModelT], int]:
        total = self.db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
        rows = self.db.scalars(stmt.offset((page - 1) * limit).limit(limit)).all()
        return list(rows), total or 0


# ---------------------------
# Users
# ---------------------------
class UserRepository(BaseRepository[User]):
    model = User

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.scalar(select(User).where(User.email == email))

    def find_active_by_email(self, email: str) -> Optional[User]:
        return self.db.scalar(select(User).where(User.email == email, User.is_active.is_(True)))

    def exists_by_email(self, email: str) -> bool:
        stmt = select(func.count()).select_from(User).where(User.email == email)
        return (self.db.scalar(stmt) or 0) > 0

    def update_last_login(self, user: User) -> None:
        user.last_login = datetime.now(timezone.utc)
        self.db.flush()


# ---------------------------
# Catalog
# ---------------------------
class CategoryRepository(BaseRepository[Category]):
    model = Category

    def find_active(self) -> Sequence[Category]:
        stmt = select(Category).where(Category.is_active.is_(True)).order_by(Category.name)
        return self.db.scalars(stmt).all()


class ProductRepository(BaseRepository[Product]):
    model = Product

    def _listing(self):
        return select(Product).options(selectinload(Product.category)).where(Product.is_active.is_(True))

    def find_with_filters(self, query: ProductQuery) -> Tuple[List[Product], int]:
        stmt = self._listing()

        if query.search:
            term = f"%{_escape_like(query.search)}%"
            stmt = stmt.where(or_(
                Product.name.ilike(term, escape="\\"),
                Product.description.ilike(term, escape="\\"),
                Product.brand.ilike(term, escape="\\"),
            ))
        if query.category_id:
            stmt = stmt.where(Product.category_id == query.category_id)
        if query.brand:
            stmt = stmt.where(Product.brand == query.brand)
        if query.color:
            stmt = stmt.where(Product.color == query.color)
        if query.min_price is not None:
            stmt = stmt.where(Product.price >= query.min_price)
        if query.max_price is not None:
            stmt = stmt.where(Product.price <= query.max_price)

        column = getattr(Product, SORTABLE_FIELDS[query.sort_by])
        order = column.asc() if query.sort_order == "ASC" else column.desc()
        # id as tiebreaker keeps pages stable when the sort column has duplicates
        stmt = stmt.order_by(order, Product.id)

        return self.paginate(stmt, query.page, query.limit)

    def find_featured(self, limit: int = 10) -> Sequence[Product]:
        stmt = (self._listing().where(Product.is_featured.is_(True))
                .order_by(Product.created_at.desc()).limit(limit))
        return self.db.scalars(stmt).all()

    def find_sale(self, limit: int = 10) -> Sequence[Product]:
        stmt = (self._listing()
                .order_by(Product.discount_percentage.desc().nulls_last(), Product.created_at.desc())
                .limit(limit))
        return self.db.scalars(stmt).all()

    def find_by_category(self, category_id: str, limit: int = 10) -> Sequence[Product]:
        stmt = (self._listing().where(Product.category_id == category_id)
                .order_by(Product.created_at.desc()).limit(limit))
        return self.db.scalars(stmt).all()

    def find_by_brand(self, brand: str, limit: int = 10) -> Sequence[Product]:
        stmt = (self._listing().where(Product.brand == brand)
                .order_by(Product.created_at.desc()).limit(limit))
        return self.db.scalars(stmt).all()

    def find_with_details(self, product_id: str) -> Optional[Product]:
        stmt = select(Product).options(selectinload(Product.category)).where(Product.id == product_id)
        return self.db.scalar(stmt)

    def update_stock(self, product_id: str, quantity: int) -> None:
        self.db.execute(update(Product).where(Product.id == product_id).values(stock=quantity))

    def decrease_stock(self, product_id: str, quantity: int) -> bool:
        # guarded in the UPDATE itself so stock can never go negative
        result = self.db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
        )
        return result.rowcount == 1

    def increase_stock(self, product_id: str, quantity: int) -> None:
        self.db.execute(
            update(Product).where(Product.id == product_id).values(stock=Product.stock + quantity)
        )


# ---------------------------
# Cart
# ---------------------------
class CartRepository(BaseRepository[CartItem]):
    model = CartItem

    def find_by_session(self, session_id: str) -> Sequence[CartItem]:
        stmt = (select(CartItem).options(joinedload(CartItem.product))
                .where(CartItem.session_id == session_id)
                .order_by(CartItem.created_at.desc(), CartItem.id))
        return self.db.scalars(stmt).all()

    def find_line(self, session_id: str, product_id: str,
                  selected_size: Optional[str] = None,
                  selected_color: Optional[str] = None) -> Optional[CartItem]:
        stmt = select(CartItem).where(
            CartItem.session_id == session_id,
            CartItem.product_id == product_id,
            CartItem.selected_size.is_(None) if selected_size is None else CartItem.selected_size == selected_size,
            CartItem.selected_color.is_(None) if selected_color is None else CartItem.selected_color == selected_color,
        )
        return self.db.scalar(stmt)

    def find_with_product(self, item_id: str) -> Optional[CartItem]:
        stmt = select(CartItem).options(joinedload(CartItem.product)).where(CartItem.id == item_id)
        return self.db.scalar(stmt)

    def find_in_session(self, item_id: str, session_id: str) -> Optional[CartItem]:
        stmt = select(CartItem).where(CartItem.id == item_id, CartItem.session_id == session_id)
        return self.db.scalar(stmt)

    def update_quantity(self, item: CartItem, quantity: int) -> None:
        item.quantity = quantity
        self.db.flush()

    def clear(self, session_id: str) -> int:
        result = self.db.execute(delete(CartItem).where(CartItem.session_id == session_id))
        return result.rowcount

    def count(self, session_id: str) -> int:
        return self.db.scalar(
            select(func.count()).select_from(CartItem).where(CartItem.session_id == session_id)
        ) or 0

    def total(self, session_id: str):
        return sum((item.price * item.quantity for item in self.find_by_session(session_id)), 0)
