from datetime import datetime, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from auth import SessionStore, new_token
from database import get_catalog_db, get_orders_db
from mailer import Mailer, get_mailer
from main import app


@pytest.fixture
def catalog_db():
    return mongomock.MongoClient()["catalog"]


@pytest.fixture
def orders_db():
    return mongomock.MongoClient()["orders"]


@pytest.fixture
def client(catalog_db, orders_db, monkeypatch):
    monkeypatch.setenv("ADMIN_PASSWORD", "s3cret-pass")
    app.dependency_overrides[get_catalog_db] = lambda: catalog_db
    app.dependency_overrides[get_orders_db] = lambda: orders_db
    app.dependency_overrides[get_mailer] = lambda: Mailer(None)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(orders_db):
    token = new_token()
    SessionStore(orders_db).create(token)
    return {"Authorization": f"Bearer {token}"}


def make_order(orders_db, **fields):
    doc = {
        "user_id": "u1",
        "user_name": "Asha",
        "user_email": "asha@example.com",
        "total": 100.0,
        "status": "pending",
        "payment_status": "pending",
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    doc.update(fields)
    return str(orders_db["orders"].insert_one(doc).inserted_id)
