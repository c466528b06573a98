import os

os.environ['DATABASE_URL']='sqlite://'
os.environ['APP_TIMEZONE']='UTC'
os.environ['JWT_SECRET']='test-secret'
os.environ['SMTP_HOST']=''
os.environ['ADMIN_EMAIL']=''

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from restaurant.auth import hash_password, token_for
from restaurant.database import Base, SessionLocal, engine
from restaurant.main import app
from restaurant.models import Category, MenuItem, Order, OrderItem, OrderStatus, OrderStatusChange, Role, User
from restaurant.utils import today_bounds


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db):
    def _make_user(*, email="owner@happyfamily.test", password="secret123", role=Role.ADMIN, is_active=True) -> User:
        user = User(name="Owner", email=email, password_hash=hash_password(password), role=role, is_active=is_active)
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user()


@pytest.fixture
def admin_token(admin):
    return token_for(admin)


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def make_item(db):
    def _make_item(name="Paneer Tikka", price=180.0, *, available=True, category=Category.STARTERS) -> MenuItem:
        item = MenuItem(name=name, description="", price=price, category=category, available=available)
        db.add(item)
        db.commit()
        return item

    return _make_item


@pytest.fixture
def today():
    start, _ = today_bounds()
    return start


@pytest.fixture
def make_order(db, today):
    """Insert an order directly, bypassing pricing, at a chosen time of day."""
    counter = {"n": 0}

    def _make_order(*, at=timedelta(hours=12), status=OrderStatus.PENDING, total=100.0) -> Order:
        counter["n"] += 1
        created_at = today + at
        order = Order(
            order_id=f"ORD-TEST{counter['n']:04d}",
            customer_name="Ravi",
            table_number=4,
            total_amount=total,
            status=status,
            created_at=created_at,
            items=[OrderItem(position=0, item_id=None, name="Chicken Biryani", quantity=1, price=total)],
            status_history=[OrderStatusChange(status=status, source="test", created_at=created_at)],
        )
        db.add(order)
        db.commit()
        return order

    return _make_order
