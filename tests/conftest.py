import mongomock
import pytest

import database
from access import Actor
from database import create_document


@pytest.fixture(autouse=True)
def store(monkeypatch):
    db = mongomock.MongoClient()["order_admin_test"]
    monkeypatch.setattr(database, "db", db)
    database.ensure_indexes()
    return db


def _staff(role, username):
    user_id = create_document("user", {
        "username": username,
        "password_hash": "not-a-real-hash",
        "name": username.title(),
        "role": role,
    })
    return Actor(id=user_id, role=role)


@pytest.fixture
def admin(store):
    return _staff("ADMIN", "admin01")


@pytest.fixture
def manager(store):
    return _staff("MANAGER", "manager01")


@pytest.fixture
def agent(store):
    return _staff("SALES_AGENT", "agent01")


@pytest.fixture
def make_product(store):
    def _make(name="Widget", price=100.0, category="ELECTRONICS", unit="PIECE"):
        return create_document("product", {
            "name": name,
            "description": f"{name} description",
            "category": category,
            "unit": unit,
            "price": price,
        })
    return _make


@pytest.fixture
def make_customer(store):
    counter = {"n": 0}

    def _make(name="Jane Doe", email=None, phone=None):
        counter["n"] += 1
        return create_document("customer", {
            "name": name,
            "email": email or f"customer{counter['n']}@example.com",
            "phone": phone,
            "address": None,
        })
    return _make
