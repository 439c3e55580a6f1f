"""
Order persistence. Every read and write of orders goes through OrderRepository.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING
from pymongo.database import Database

from database import utcnow

logger = logging.getLogger(__name__)

ORDERS = "orders"


class InvalidOrderId(ValueError):
    pass


def parse_order_id(order_id: str) -> ObjectId:
    try:
        return ObjectId(order_id)
    except (InvalidId, TypeError):
        raise InvalidOrderId(order_id)


@dataclass
class BatchResult:
    matched: int = 0
    modified: int = 0
    missing: List[str] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return not self.missing


def serialize_order(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "userId": doc.get("user_id"),
        "userName": doc.get("user_name"),
        "userEmail": doc.get("user_email"),
        "status": doc.get("status") or "pending",
        "paymentStatus": doc.get("payment_status") or "pending",
        "trackingNumber": doc.get("tracking_number"),
        "total": doc.get("total"),
        "items": doc.get("items") or [],
        "createdAt": doc.get("created_at"),
        "updatedAt": doc.get("updated_at"),
    }


class OrderRepository:
    def __init__(self, database: Database):
        self.collection = database[ORDERS]

    def get(self, order_id: str) -> Optional[Dict[str, Any]]:
        return self.collection.find_one({"_id": parse_order_id(order_id)})

    def list_recent(self, limit: int) -> List[Dict[str, Any]]:
        return list(self.collection.find({}).sort("created_at", DESCENDING).limit(limit))

    def list_since(self, since: datetime) -> List[Dict[str, Any]]:
        # Stored timestamps are naive UTC
        if since.tzinfo is not None:
            since = since.astimezone(timezone.utc).replace(tzinfo=None)
        return list(self.collection.find({"created_at": {"$gte": since}}).sort("created_at", DESCENDING))

    def update_partial(self, order_id: str, fields: Dict[str, Any]) -> bool:
        """Set `fields` plus updated_at on one order. Returns False when the order does not exist."""
        changes = dict(fields, updated_at=utcnow())
        result = self.collection.update_one({"_id": parse_order_id(order_id)}, {"$set": changes})
        return result.matched_count > 0

    def update_batch(self, order_ids: List[str], fields: Dict[str, Any]) -> BatchResult:
        """
        Apply the same `fields` to every named order.

        All ids must exist, otherwise nothing is written and the unknown ids
        are reported in `missing`. The write itself is a single update_many;
        MongoDB only guarantees per-document atomicity, so an error raised
        during the write can leave part of the batch updated. Re-running the
        same batch is safe.
        """
        oids = [parse_order_id(i) for i in order_ids]
        unique = list(dict.fromkeys(oids))
        found = {d["_id"] for d in self.collection.find({"_id": {"$in": unique}}, {"_id": 1})}
        missing = [str(o) for o in unique if o not in found]
        if missing:
            return BatchResult(missing=missing)
        changes = dict(fields, updated_at=utcnow())
        result = self.collection.update_many({"_id": {"$in": unique}}, {"$set": changes})
        logger.info("Bulk update matched %d orders, modified %d", result.matched_count, result.modified_count)
        return BatchResult(matched=result.matched_count, modified=result.modified_count)
