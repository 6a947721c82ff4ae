import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_SECRET", "test-secret")

from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from realestate.core.db import Base, get_db
from realestate.core.security import hash_password
from realestate.main import app
from realestate.models.user import Role, User, UserStatus
from realestate.services.storage import LocalImageStorage, get_storage

PASSWORD = "secret123"
PASSWORD_HASH = hash_password(PASSWORD)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalImageStorage(str(tmp_path / "uploads"))


@pytest.fixture(autouse=True)
def overrides(storage):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(username, role=Role.BUYER, status=UserStatus.APPROVED, **extra):
        user = User(
            username=username,
            email=f"{username}@example.com",
            password_hash=PASSWORD_HASH,
            role=role,
            status=status,
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def login():
    """A fresh client holding the session cookie of ``username``."""

    def _login(username, password=PASSWORD):
        c = TestClient(app)
        r = c.post("/api/auth/login", json={"username": username, "password": password})
        assert r.status_code == 200, r.text
        return c

    return _login


@pytest.fixture
def seller(make_user, login):
    user = make_user("sally", role=Role.SELLER, first_name="Sally", phone="555-0100")
    return user, login("sally")


@pytest.fixture
def buyer(make_user, login):
    user = make_user("bob", role=Role.BUYER, first_name="Bob")
    return user, login("bob")


@pytest.fixture
def superuser(make_user, login):
    user = make_user("root", role=Role.SUPERUSER)
    return user, login("root")


@pytest.fixture
def admin(make_user, login):
    user = make_user("adam", role=Role.ADMIN)
    return user, login("adam")


def png_bytes(size=(4, 4), color=(200, 30, 30)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


LAKE_HOUSE = {
    "title": "Lake House",
    "description": "Three bedrooms by the water",
    "price": 250000,
    "propertyType": "house",
    "bedrooms": 3,
    "city": "Lakeside",
}


def create_post(client, **overrides):
    body = dict(LAKE_HOUSE, **overrides)
    r = client.post("/api/posts", json=body)
    assert r.status_code == 201, r.text
    return r.json()["data"]["postId"]
