"""
Shared pytest fixtures: an in-memory SQLite database, users of every role
and TestClients signed in as them.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import models  # noqa: F401
from db import get_session
from main import app
from models import Role, User
from permissions import Identity
from routers.auth import SESSION_COOKIE, create_session_token, hash_password


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    """Factory creating a stored user with password 'secret123'."""

    def _make(role=Role.FARMER, email=None, **fields):
        fields.setdefault("full_name", f"Test {role.value}")
        fields.setdefault("phone", "+91 90000 00000")
        fields.setdefault("state", "Punjab")
        fields.setdefault("district", "Ludhiana")
        fields.setdefault("village", "Raikot")
        user = User(
            email=email or f"{role.value}-{os.urandom(4).hex()}@example.com",
            password_hash=hash_password("secret123"),
            role=role,
            **fields,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def farmer(make_user):
    return make_user(Role.FARMER, email="farmer@example.com", full_name="Gurpreet Singh")


@pytest.fixture
def other_farmer(make_user):
    return make_user(Role.FARMER, email="other@example.com", village="Khanna")


@pytest.fixture
def ngo(make_user):
    return make_user(
        Role.NGO, email="ngo@example.com", organization_name="Green Fields Trust"
    )


@pytest.fixture
def donor(make_user):
    return make_user(Role.DONOR, email="donor@example.com")


@pytest.fixture
def admin(make_user):
    return make_user(Role.ADMIN, email="admin@example.com")


@pytest.fixture
def identity_of():
    def _identity(user: User) -> Identity:
        return Identity(user_id=user.id, email=user.email, role=user.role)

    return _identity


@pytest.fixture
def client_for(session):
    """Factory returning a TestClient signed in as the given user."""
    app.dependency_overrides[get_session] = lambda: session
    clients = []

    def _client(user=None):
        client = TestClient(app)
        if user is not None:
            client.cookies.set(SESSION_COOKIE, create_session_token(user.id))
        clients.append(client)
        return client

    yield _client
    for client in clients:
        client.close()
    app.dependency_overrides.clear()
