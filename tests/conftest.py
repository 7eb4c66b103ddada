import os

# has to be set before marketplace.utils.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"

from decimal import Decimal

import fakeredis
import pytest
from fastapi.testclient import TestClient

from marketplace.api.deps import get_lock_service
from marketplace.data.database import Base, SessionLocal, engine
from marketplace.data.models import ProductModel, ProductVariantModel, UserModel
from marketplace.domain.actor import Actor
from marketplace.domain.statuses import Role
from marketplace.services.lock_service import LockService


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def lock_service():
    return LockService(client=fakeredis.FakeRedis(decode_responses=True))


@pytest.fixture
def client(db, lock_service):
    from marketplace.main import app

    app.dependency_overrides[get_lock_service] = lambda: lock_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(user_id, role=Role.BUYER, name=None):
        user = UserModel(id=user_id, name=name or f"user-{user_id}", role=role.value)
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_product(db):
    def _make(seller_id, price="100.00", stock=5, is_active=True, name=None):
        product = ProductModel(
            seller_id=seller_id,
            name=name or f"product-{price}-{stock}",
            price=Decimal(price),
            stock=stock,
            is_active=is_active,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_variant(db):
    def _make(product_id, adjustment="0.00", is_active=True):
        variant = ProductVariantModel(
            product_id=product_id,
            name="Size",
            value="L",
            price_adjustment=Decimal(adjustment),
            is_active=is_active,
        )
        db.add(variant)
        db.commit()
        return variant

    return _make


@pytest.fixture
def seller(make_user):
    make_user(10, Role.SELLER)
    return Actor(user_id=10, role=Role.SELLER)


@pytest.fixture
def buyer(make_user):
    make_user(20, Role.BUYER)
    return Actor(user_id=20, role=Role.BUYER)


@pytest.fixture
def other_buyer(make_user):
    make_user(21, Role.BUYER)
    return Actor(user_id=21, role=Role.BUYER)


@pytest.fixture
def admin(make_user):
    make_user(1, Role.ADMIN)
    return Actor(user_id=1, role=Role.ADMIN)
