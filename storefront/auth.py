import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, BCRYPT_ROUNDS, JWT_ALGORITHM, JWT_SECRET
from .core import AuthOut, UserOut
from .database import get_db
from .errors import Conflict, Forbidden, Unauthorized
from .models import User, UserRole
from .repositories import UserRepository

log = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)
bearer_scheme = HTTPBearer(auto_error=False)

# verified against when the email is unknown so both paths cost one bcrypt check
_DUMMY_HASH = pwd_context.hash("storefront-dummy-password")


# Utilities

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise Unauthorized("Invalid or expired token")


def _public_user(user: User) -> UserOut:
    return UserOut.model_validate(user)


def _issue_token(user: User) -> str:
    return create_access_token({
        "sub": user.id,
        "email": user.email,
        "role": user.role.value,
        "firstName": user.first_name,
        "lastName": user.last_name,
    })


def _check_credentials(users: UserRepository, email: str, password: str) -> Optional[User]:
    user = users.find_active_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    return user if verify_password(password, user.password) else None


# Auth service

def register(db: Session, email: str, password: str, first_name: str, last_name: str,
             role: Optional[UserRole] = None) -> AuthOut:
    users = UserRepository(db)
    if users.exists_by_email(email):
        raise Conflict("User with this email already exists")

    user = users.create(
        email=email,
        password=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role or UserRole.USER,
    )
    db.commit()
    log.info("registered user %s as %s", user.id, user.role.value)
    return AuthOut(access_token=_issue_token(user), user=_public_user(user))


def login(db: Session, email: str, password: str) -> AuthOut:
    users = UserRepository(db)
    user = _check_credentials(users, email, password)
    if not user:
        log.warning("rejected login for %s", email)
        raise Unauthorized("Invalid credentials")

    users.update_last_login(user)
    db.commit()
    log.info("user %s logged in", user.id)
    return AuthOut(access_token=_issue_token(user), user=_public_user(user))


def validate_user(db: Session, email: str, password: str) -> Optional[UserOut]:
    user = _check_credentials(UserRepository(db), email, password)
    return _public_user(user) if user else None


def validate_token_payload(db: Session, payload: dict) -> UserOut:
    """Resolve a decoded token to the live user it names.

    Tokens outlive account changes, so the user is re-read on every request
    and rejected once deleted or deactivated.
    """
    user_id = payload.get("sub")
    user = UserRepository(db).find_by_id(user_id) if user_id else None
    if not user or not user.is_active:
        raise Unauthorized("User not found or inactive")
    return _public_user(user)


def roles_allowed(required_roles: Iterable[UserRole], user: Optional[UserOut]) -> bool:
    required = set(required_roles)
    if not required:
        return True
    if user is None:
        return False
    return user.role in required


# Dependencies

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> UserOut:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized("Not authenticated")
    payload = decode_token(credentials.credentials)
    return validate_token_payload(db, payload)


def require_roles(*roles: UserRole):
    def _guard(user: UserOut = Depends(get_current_user)) -> UserOut:
        if not roles_allowed(roles, user):
            raise Forbidden("Insufficient role")
        return user
    return _guard
