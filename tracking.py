"""
Storefront analytics events.

Handlers receive an EventTracker through a FastAPI dependency instead of
reaching for a global tracking function.
"""
import logging
from typing import Any, Dict, Optional, Protocol

from fastapi import Depends
from pymongo.database import Database

from database import get_orders_db, utcnow

logger = logging.getLogger(__name__)

EVENTS = "analytics_events"


class EventTracker(Protocol):
    def track(self, event: str, properties: Dict[str, Any]) -> None:
        ...


class MongoEventTracker:
    def __init__(self, database: Database):
        self.collection = database[EVENTS]

    def track(self, event: str, properties: Dict[str, Any]) -> None:
        self.collection.insert_one({"event": event, "properties": properties, "created_at": utcnow()})


class LoggingEventTracker:
    """Used when the order/admin store is not configured."""

    def track(self, event: str, properties: Dict[str, Any]) -> None:
        logger.info("analytics event %s %s", event, properties)


def get_tracker(database: Optional[Database] = Depends(get_orders_db)) -> EventTracker:
    if database is None:
        return LoggingEventTracker()
    return MongoEventTracker(database)
