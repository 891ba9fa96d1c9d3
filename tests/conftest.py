import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from factories import make_product
from storefront.db import Base, get_db
from storefront.main import app
from storefront.models import Category, User


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def seed(db):
    """
    Two categories, four products, three users.

    runner: shoes, 60 with offer 50, oldest
    loafer: shoes, 80
    tee:    shirts, 20, featured
    polo:   shirts, 35 with offer 30, newest
    """
    shoes = Category(name="shoes")
    shirts = Category(name="shirts")
    db.add_all([shoes, shirts])
    db.flush()

    runner = make_product(db, "Runner", 60, offer=50, category=shoes, days=0)
    loafer = make_product(db, "Loafer", 80, category=shoes, days=1)
    tee = make_product(db, "Tee", 20, category=shirts, days=2, featured=True)
    polo = make_product(db, "Polo", 35, offer=30, category=shirts, days=3)

    alice = User(email="alice@example.com", name="Alice")
    bob = User(email="bob@example.com", name="Bob")
    admin = User(email="admin@example.com", name="Admin", role="admin")
    db.add_all([alice, bob, admin])
    db.commit()

    return SimpleNamespace(
        shoes=shoes, shirts=shirts,
        runner=runner, loafer=loafer, tee=tee, polo=polo,
        alice=alice, bob=bob, admin=admin,
    )
