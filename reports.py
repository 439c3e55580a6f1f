"""
Per-customer order reports for the admin panel.

The report is rebuilt from the most recent AGGREGATION_WINDOW orders on
every request. Customers whose orders all fall outside the window are
not reported, and totals only cover the window.
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from schemas import CustomerStats, CustomerSummary

logger = logging.getLogger(__name__)

AGGREGATION_WINDOW = 200


def order_amount(order: Dict[str, Any]) -> float:
    """Order total, falling back to pricing.total. Missing or malformed values count as 0."""
    value = order.get("total")
    if value in (None, ""):
        pricing = order.get("pricing")
        value = pricing.get("total") if isinstance(pricing, dict) else None
    if isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def order_timestamp(order: Dict[str, Any]) -> Optional[datetime]:
    value = order.get("created_at")
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    # Mongo hands back naive UTC datetimes
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def customer_key(order: Dict[str, Any]) -> Optional[str]:
    return order.get("user_id") or order.get("user_email") or None


@dataclass
class _Tally:
    id: str
    name: str
    email: str
    total_orders: int = 0
    total_spent: float = 0.0
    last_order_date: Optional[datetime] = None

    def add(self, amount: float, placed_at: Optional[datetime]) -> None:
        self.total_orders += 1
        self.total_spent += amount
        if placed_at is not None and (self.last_order_date is None or placed_at > self.last_order_date):
            self.last_order_date = placed_at

    def summary(self) -> CustomerSummary:
        average = self.total_spent / self.total_orders if self.total_orders > 0 else 0.0
        return CustomerSummary(
            id=self.id,
            name=self.name,
            email=self.email,
            total_orders=self.total_orders,
            total_spent=self.total_spent,
            last_order_date=self.last_order_date,
            average_order_value=average,
        )


class CustomerLedger:
    """
    Mapping of customer id to running tally.

    The first order seen for a customer creates the entry and fixes its
    display name and email; later orders only add to it.
    """

    def __init__(self):
        self._tallies: Dict[str, _Tally] = {}

    def __len__(self) -> int:
        return len(self._tallies)

    def __contains__(self, customer_id: str) -> bool:
        return customer_id in self._tallies

    def record(self, order: Dict[str, Any]) -> bool:
        key = customer_key(order)
        if key is None:
            return False
        tally = self._tallies.get(key)
        if tally is None:
            tally = _Tally(
                id=key,
                name=order.get("user_name") or "Unknown",
                email=order.get("user_email") or "",
            )
            self._tallies[key] = tally
        tally.add(order_amount(order), order_timestamp(order))
        return True

    def summaries(self) -> List[CustomerSummary]:
        return [t.summary() for t in self._tallies.values()]


def summarize_customers(orders: Iterable[Dict[str, Any]]) -> Tuple[List[CustomerSummary], CustomerStats]:
    ledger = CustomerLedger()
    skipped = 0
    for order in orders:
        if not ledger.record(order):
            skipped += 1
    if skipped:
        logger.debug("Skipped %d orders without a customer id", skipped)
    customers = ledger.summaries()
    stats = CustomerStats(
        total=len(customers),
        total_revenue=sum(c.total_spent for c in customers),
    )
    return customers, stats


ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered", "cancelled")


def order_stats(orders: List[Dict[str, Any]]) -> Dict[str, Any]:
    stats: Dict[str, Any] = {"total": len(orders)}
    for status in ORDER_STATUSES:
        stats[status] = sum(1 for o in orders if (o.get("status") or "pending") == status)
    stats["revenue"] = sum(order_amount(o) for o in orders)
    return stats


STATS_RANGES = {"7d": 7, "30d": 30, "90d": 90}


def dashboard_stats(orders: Iterable[Dict[str, Any]], now: datetime, days: int) -> Dict[str, Any]:
    """
    Revenue, order and customer figures for the last `days` days, with the
    revenue change against the `days` before that. Orders without a
    readable timestamp are left out.
    """
    start = now - timedelta(days=days)
    previous_start = start - timedelta(days=days)
    revenue = previous_revenue = 0.0
    count = 0
    customers = set()
    by_date: Dict[str, Dict[str, Any]] = {}
    for order in orders:
        placed_at = order_timestamp(order)
        if placed_at is None:
            continue
        amount = order_amount(order)
        if placed_at >= start:
            revenue += amount
            count += 1
            key = customer_key(order)
            if key:
                customers.add(key)
            day = by_date.setdefault(placed_at.date().isoformat(), {"revenue": 0.0, "orders": 0})
            day["revenue"] += amount
            day["orders"] += 1
        elif placed_at >= previous_start:
            previous_revenue += amount
    if previous_revenue > 0:
        change = (revenue - previous_revenue) / previous_revenue * 100
    else:
        change = 100.0 if revenue > 0 else 0.0
    return {
        "totalRevenue": revenue,
        "totalOrders": count,
        "totalCustomers": len(customers),
        "averageOrderValue": revenue / count if count > 0 else 0.0,
        "revenueChange": change,
        "revenueByDate": [{"date": d, **v} for d, v in sorted(by_date.items())],
    }
