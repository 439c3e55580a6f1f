"""
Environment configuration for the Mitss furniture storefront API.

Values are read on every call so that variables exported after import
(process managers, tests) are picked up.
"""
import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def database_url() -> Optional[str]:
    return os.getenv("DATABASE_URL")


def database_name() -> str:
    return os.getenv("DATABASE_NAME") or "default"


def orders_database_url() -> Optional[str]:
    # Orders live in their own database, optionally on the same server
    return os.getenv("ORDERS_DATABASE_URL") or os.getenv("DATABASE_URL")


def orders_database_name() -> str:
    return os.getenv("ORDERS_DATABASE_NAME") or "orders"


def products_collection() -> str:
    return os.getenv("PRODUCTS_COLLECTION") or "products"


def admin_password() -> Optional[str]:
    return os.getenv("ADMIN_PASSWORD") or None


def admin_session_ttl_hours() -> int:
    return int(os.getenv("ADMIN_SESSION_TTL_HOURS", 12))


def mongo_timeout_ms() -> int:
    return int(os.getenv("MONGO_TIMEOUT_MS", 5000))


def log_level() -> str:
    return (os.getenv("LOG_LEVEL") or "INFO").upper()


def cors_origins() -> List[str]:
    raw = os.getenv("CORS_ORIGINS") or "*"
    return [o.strip() for o in raw.split(",") if o.strip()]
