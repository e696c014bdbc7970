# tests/test_auth.py
import pytest
from jose import jwt

from storefront import auth
from storefront.config import JWT_ALGORITHM, JWT_SECRET
from storefront.core import UserOut
from storefront.errors import Conflict, Unauthorized
from storefront.models import User, UserRole


def test_register_issues_token_and_public_view(db):
    result = auth.register(db, "new@example.com", "secret123", "New", "User")

    assert result.user.role == UserRole.USER
    assert "password" not in result.user.model_dump(by_alias=True)
    claims = jwt.decode(result.access_token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    assert claims["sub"] == result.user.id
    assert claims["email"] == "new@example.com"
    assert claims["role"] == "user"
    assert claims["firstName"] == "New"
    assert claims["lastName"] == "User"

    stored = db.get(User, result.user.id)
    assert stored.password != "secret123"
    assert auth.verify_password("secret123", stored.password)

def test_register_with_role(db):
    result = auth.register(db, "boss@example.com", "secret123", "B", "O", UserRole.MANAGER)
    assert result.user.role == UserRole.MANAGER

def test_duplicate_register_skips_hashing(db, monkeypatch):
    auth.register(db, "dup@example.com", "secret123", "A", "B")

    calls = []
    monkeypatch.setattr(auth, "hash_password", lambda p: calls.append(p) or "x")
    with pytest.raises(Conflict):
        auth.register(db, "dup@example.com", "other123", "C", "D")
    assert calls == []

def test_login(db, make_user):
    user = make_user()
    result = auth.login(db, "jane@example.com", "secret123")

    assert result.user.id == user.id
    db.expire_all()
    assert db.get(User, user.id).last_login is not None

def test_login_wrong_password_does_not_touch_last_login(db, make_user):
    user = make_user()
    with pytest.raises(Unauthorized):
        auth.login(db, "jane@example.com", "wrong-password")
    db.expire_all()
    assert db.get(User, user.id).last_login is None

def test_login_unknown_or_inactive(db, make_user):
    make_user(email="off@example.com", is_active=False)
    with pytest.raises(Unauthorized):
        auth.login(db, "off@example.com", "secret123")
    with pytest.raises(Unauthorized):
        auth.login(db, "ghost@example.com", "secret123")

def test_validate_user(db, make_user):
    user = make_user()
    found = auth.validate_user(db, "jane@example.com", "secret123")
    assert isinstance(found, UserOut)
    assert found.id == user.id
    assert auth.validate_user(db, "jane@example.com", "nope") is None
    db.expire_all()
    assert db.get(User, user.id).last_login is None

def test_validate_token_payload(db, make_user):
    user = make_user()
    identity = auth.validate_token_payload(db, {"sub": user.id})
    assert identity.email == "jane@example.com"

    with pytest.raises(Unauthorized):
        auth.validate_token_payload(db, {"sub": "deleted-user"})
    with pytest.raises(Unauthorized):
        auth.validate_token_payload(db, {})

    user.is_active = False
    db.commit()
    with pytest.raises(Unauthorized):
        auth.validate_token_payload(db, {"sub": user.id})

def test_decode_token_rejects_garbage():
    with pytest.raises(Unauthorized):
        auth.decode_token("not-a-token")


def _identity(role):
    return UserOut(id="u1", email="u@example.com", first_name="U", last_name="S", role=role)

def test_roles_allowed_without_required_roles():
    assert auth.roles_allowed([], None)
    assert auth.roles_allowed([], _identity(UserRole.USER))

def test_roles_allowed_requires_identity():
    assert not auth.roles_allowed([UserRole.ADMIN], None)

@pytest.mark.parametrize("role,required,expected", [
    (UserRole.ADMIN, [UserRole.ADMIN], True),
    (UserRole.USER, [UserRole.ADMIN], False),
    (UserRole.MANAGER, [UserRole.ADMIN, UserRole.MANAGER], True),
    (UserRole.USER, [UserRole.ADMIN, UserRole.MANAGER], False),
])
def test_roles_allowed_membership(role, required, expected):
    assert auth.roles_allowed(required, _identity(role)) is expected

def test_unknown_email_still_checks_a_password_hash(db, monkeypatch):
    checked = []
    real_verify = auth.verify_password

    def _recording_verify(plain, hashed):
        checked.append(hashed)
        return real_verify(plain, hashed)

    monkeypatch.setattr(auth, "verify_password", _recording_verify)
    with pytest.raises(Unauthorized):
        auth.login(db, "ghost@example.com", "secret123")
    assert checked == [auth._DUMMY_HASH]
