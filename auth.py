"""
Admin authentication.

The login endpoint checks the submitted password against ADMIN_PASSWORD and
issues an opaque token. Issued tokens are stored in the `admin_sessions`
collection with an expiry, and privileged routes only pass when the
request carries a token that is still present there. A cookie that merely
exists is not enough.
"""
import logging
import secrets
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request
from pymongo.database import Database

import config
from database import get_catalog_db, get_orders_db, utcnow

logger = logging.getLogger(__name__)

SESSIONS = "admin_sessions"
TOKEN_PREFIX = "admin_"
SESSION_COOKIE = "admin_token"
# Cookie names the admin panel has used for the session token
TOKEN_COOKIES = (SESSION_COOKIE, "adminToken", "__session")
TOKEN_HEADER = "x-admin-token"


class AdminNotConfigured(RuntimeError):
    pass


@dataclass
class LoginResult:
    success: bool
    token: Optional[str] = None


def new_token() -> str:
    return f"{TOKEN_PREFIX}{int(time.time() * 1000)}_{secrets.token_urlsafe(24)}"


def check_password(password: Optional[str], secret: Optional[str] = None) -> LoginResult:
    """
    Compare `password` with the configured admin secret.

    Raises AdminNotConfigured when no secret is set, so callers can never
    hand out a token against an empty secret.
    """
    secret = secret if secret is not None else config.admin_password()
    if not secret:
        logger.error("[ADMIN AUTH] ADMIN_PASSWORD not set in environment")
        raise AdminNotConfigured("Admin password not configured")
    password = password or ""
    logger.info("[ADMIN AUTH] Attempt - password length: %d", len(password))
    if secrets.compare_digest(password.encode(), secret.encode()):
        logger.info("[ADMIN AUTH] Success")
        return LoginResult(success=True, token=new_token())
    logger.info("[ADMIN AUTH] Failed - password mismatch")
    return LoginResult(success=False)


class SessionStore:
    def __init__(self, database: Database):
        self.collection = database[SESSIONS]

    def create(self, token: str, ttl_hours: Optional[int] = None) -> None:
        # Mongo drops documents once expires_at has passed
        self.collection.create_index("expires_at", expireAfterSeconds=0)
        ttl = ttl_hours if ttl_hours is not None else config.admin_session_ttl_hours()
        now = utcnow()
        self.collection.insert_one({
            "token": token,
            "created_at": now,
            "expires_at": now + timedelta(hours=ttl),
        })

    def is_valid(self, token: str) -> bool:
        doc = self.collection.find_one({"token": token})
        if not doc:
            return False
        expires_at = doc.get("expires_at")
        if expires_at is None:
            return False
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=utcnow().tzinfo)
        if expires_at <= utcnow():
            self.collection.delete_one({"_id": doc["_id"]})
            return False
        return True

    def revoke(self, token: str) -> bool:
        return self.collection.delete_one({"token": token}).deleted_count > 0


def extract_token(request: Request) -> Optional[str]:
    for name in TOKEN_COOKIES:
        value = request.cookies.get(name)
        if value:
            return value
    header = request.headers.get("authorization") or ""
    if header.lower().startswith("bearer "):
        bearer = header[7:].strip()
        if bearer:
            return bearer
    return request.headers.get(TOKEN_HEADER) or None


def require_catalog_db(database: Optional[Database] = Depends(get_catalog_db)) -> Database:
    if database is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return database


def require_orders_db(database: Optional[Database] = Depends(get_orders_db)) -> Database:
    if database is None:
        raise HTTPException(status_code=500, detail="Database not initialized")
    return database


def get_session_store(database: Database = Depends(require_orders_db)) -> SessionStore:
    return SessionStore(database)


def require_admin(request: Request, sessions: SessionStore = Depends(get_session_store)) -> str:
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not sessions.is_valid(token):
        logger.warning("Rejected admin request to %s with unknown or expired session", request.url.path)
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return token
