"""
Admin panel API: login, order management, dashboard stats and customer reports.
"""
import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pymongo.database import Database
from pymongo.errors import PyMongoError

import config
from auth import (
    SESSION_COOKIE,
    AdminNotConfigured,
    SessionStore,
    check_password,
    get_session_store,
    require_admin,
    require_catalog_db,
    require_orders_db,
)
from database import utcnow
from reports import AGGREGATION_WINDOW, STATS_RANGES, dashboard_stats, order_stats, summarize_customers
from repository import InvalidOrderId, OrderRepository, serialize_order
from schemas import AdminLogin, BulkOrderUpdate, OrderUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])
protected = APIRouter(dependencies=[Depends(require_admin)])


def get_order_repository(database: Database = Depends(require_orders_db)) -> OrderRepository:
    return OrderRepository(database)


@router.post("/login")
def admin_login(payload: AdminLogin, response: Response, sessions: SessionStore = Depends(get_session_store)):
    try:
        result = check_password(payload.password)
    except AdminNotConfigured as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not result.success:
        raise HTTPException(status_code=401, detail="Invalid password")
    try:
        sessions.create(result.token)
    except PyMongoError:
        logger.exception("Could not store admin session")
        raise HTTPException(status_code=500, detail="Server error")
    response.set_cookie(SESSION_COOKIE, result.token, httponly=True, samesite="lax")
    return {"success": True, "token": result.token}


@protected.post("/logout")
def admin_logout(response: Response, token: str = Depends(require_admin), sessions: SessionStore = Depends(get_session_store)):
    sessions.revoke(token)
    response.delete_cookie(SESSION_COOKIE)
    return {"success": True}


@protected.get("/orders")
def list_orders(limit: int = Query(50, ge=1, le=500), orders: OrderRepository = Depends(get_order_repository)):
    try:
        docs = orders.list_recent(limit)
    except PyMongoError:
        logger.exception("Error fetching orders")
        raise HTTPException(status_code=500, detail="Failed to fetch orders")
    return {
        "success": True,
        "orders": [serialize_order(d) for d in docs],
        "stats": order_stats(docs),
    }


# Declared before /orders/{order_id} so "bulk-update" is not taken for an id
@protected.patch("/orders/bulk-update")
def bulk_update_orders(payload: BulkOrderUpdate, orders: OrderRepository = Depends(get_order_repository)):
    try:
        result = orders.update_batch(payload.order_ids, {"status": payload.status})
    except InvalidOrderId as e:
        raise HTTPException(status_code=400, detail=f"Invalid order id: {e}")
    except PyMongoError:
        logger.exception("Error bulk updating %d orders", len(payload.order_ids))
        raise HTTPException(status_code=500, detail="Failed to update orders")
    if not result.applied:
        raise HTTPException(status_code=404, detail=f"Orders not found: {', '.join(result.missing)}")
    return {
        "success": True,
        "message": f"{len(payload.order_ids)} orders updated successfully",
    }


@protected.patch("/orders/{order_id}")
def update_order(order_id: str, payload: OrderUpdate, orders: OrderRepository = Depends(get_order_repository)):
    try:
        found = orders.update_partial(order_id, payload.changes())
    except InvalidOrderId:
        raise HTTPException(status_code=400, detail="Invalid ID")
    except PyMongoError:
        logger.exception("Error updating order %s", order_id)
        raise HTTPException(status_code=500, detail="Failed to update order")
    if not found:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"success": True, "message": "Order updated successfully"}


@protected.get("/customers-summary")
def customers_summary(response: Response, orders: OrderRepository = Depends(get_order_repository)):
    try:
        docs = orders.list_recent(AGGREGATION_WINDOW)
    except PyMongoError:
        logger.exception("Error fetching customers")
        raise HTTPException(status_code=500, detail="Failed to fetch customers")
    customers, stats = summarize_customers(docs)
    response.headers["Cache-Control"] = "no-store, max-age=0"
    return {
        "success": True,
        "customers": [c.model_dump(mode="json", by_alias=True) for c in customers],
        "stats": stats.model_dump(by_alias=True),
    }


@protected.get("/stats")
def dashboard(
    range_: str = Query("7d", alias="range", pattern="^(7d|30d|90d)$"),
    orders: OrderRepository = Depends(get_order_repository),
    catalog: Database = Depends(require_catalog_db),
):
    days = STATS_RANGES[range_]
    now = utcnow()
    try:
        docs = orders.list_since(now - timedelta(days=2 * days))
        total_products = catalog[config.products_collection()].count_documents({})
    except PyMongoError:
        logger.exception("Error fetching dashboard stats")
        raise HTTPException(status_code=500, detail="Failed to fetch stats")
    stats = dashboard_stats(docs, now, days)
    stats["totalProducts"] = total_products
    return {"success": True, "range": range_, "stats": stats}


router.include_router(protected)
