"""
MongoDB handles for the two stores.

`db` is the catalog store (products, reviews, carts). `orders_db` is the
order/admin store (orders, admin sessions, analytics events). Either is
None when its connection string is not configured.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

import config

logger = logging.getLogger(__name__)


def _connect(url: Optional[str], name: str) -> Optional[Database]:
    if not url:
        return None
    timeout = config.mongo_timeout_ms()
    client = MongoClient(
        url,
        serverSelectionTimeoutMS=timeout,
        socketTimeoutMS=timeout,
        connectTimeoutMS=timeout,
    )
    return client[name]


try:
    db = _connect(config.database_url(), config.database_name())
    orders_db = _connect(config.orders_database_url(), config.orders_database_name())
except Exception as e:
    logger.error("Could not create MongoDB clients: %s", e)
    db = None
    orders_db = None


def get_catalog_db() -> Optional[Database]:
    return db


def get_orders_db() -> Optional[Database]:
    return orders_db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]], database: Optional[Database] = None) -> str:
    """Insert a document with created_at/updated_at stamps and return its id as a string."""
    target = database if database is not None else db
    if target is None:
        raise RuntimeError("Database not initialized")
    doc = data.model_dump() if isinstance(data, BaseModel) else dict(data)
    now = utcnow()
    doc.setdefault("created_at", now)
    doc["updated_at"] = now
    result = target[collection_name].insert_one(doc)
    return str(result.inserted_id)
