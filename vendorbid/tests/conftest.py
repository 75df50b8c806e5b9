"""
Shared fixtures: an in-memory SQLite database rebuilt for every test and
a TestClient bound to the application.
"""
import os
import tempfile

os.environ["DEBUG"] = "true"
os.environ["SECRET_KEY"] = "test-secret-key-0123456789abcdef0123456789abcdef"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="vendorbid-uploads-")
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from vendorbid.core.security import get_password_hash  # noqa: E402
from vendorbid.db.models import User, UserRole  # noqa: E402
from vendorbid.db.session import Base, SessionLocal, engine  # noqa: E402
from vendorbid.main import app  # noqa: E402
from vendorbid.tests.helpers import (  # noqa: E402
    PASSWORD, auth, bid_form, requirement_payload, set_verified
)


@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def register(client):
    """Register an account through the API; returns (token, user_id)."""
    counter = {"n": 0}

    def _register(user_type: str, email: str = None, name: str = None):
        counter["n"] += 1
        email = email or f"{user_type}{counter['n']}@example.com"
        response = client.post("/api/auth/register", json={
            "name": name or f"{user_type.title()} {counter['n']}",
            "email": email,
            "password": PASSWORD,
            "phone": f"90000000{counter['n']:02d}",
            "user_type": user_type,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return body["access_token"], body["user"]["id"]

    return _register


@pytest.fixture
def vendor(register):
    return register("vendor")


@pytest.fixture
def verified_supplier(register):
    token, user_id = register("supplier")
    set_verified(user_id)
    return token, user_id


@pytest.fixture
def admin(client):
    with SessionLocal() as db:
        db.add(User(
            email="admin@example.com",
            hashed_password=get_password_hash(PASSWORD),
            name="Administrator",
            role=UserRole.ADMIN.value,
            verified=True,
        ))
        db.commit()
    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": PASSWORD})
    assert response.status_code == 200, response.text
    body = response.json()
    return body["access_token"], body["user"]["id"]


@pytest.fixture
def create_requirement(client):
    def _create(token: str, **overrides) -> dict:
        response = client.post(
            "/api/requirements", json=requirement_payload(**overrides), headers=auth(token)
        )
        assert response.status_code == 201, response.text
        return response.json()["requirement"]

    return _create


@pytest.fixture
def place_bid(client):
    def _place(token: str, requirement_id: int, amount: float = 4000, files=None, **overrides):
        return client.post(
            "/api/bids",
            data=bid_form(requirement_id, amount, **overrides),
            files=files,
            headers=auth(token),
        )

    return _place
