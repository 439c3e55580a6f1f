import logging
import os
from typing import Optional

from bson import ObjectId
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from admin import router as admin_router
from auth import require_admin, require_catalog_db
from database import create_document, get_catalog_db, get_orders_db, utcnow
from mailer import ORDER_CONFIRMATION, Mailer, get_mailer
from schemas import Cart, CartItem, EmailRequest, HelpfulVote, Product as ProductSchema, ProductUpdate, Review as ReviewSchema, TrackEvent
from search import CANDIDATE_LIMIT, normalize_query, rank_suggestions
from tracking import EventTracker, get_tracker

logging.basicConfig(level=config.log_level(), format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Mitss Furniture API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.detail}, headers=exc.headers)


@app.exception_handler(PyMongoError)
async def store_error(request: Request, exc: PyMongoError):
    logger.exception("Store error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "error": "Database error"})


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "header")) or "body"
    return JSONResponse(status_code=400, content={"success": False, "error": f"{field}: {first.get('msg', 'invalid')}"})


# Utilities
def to_oid(oid: str):
    try:
        return ObjectId(oid)
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid ID")


def stringify_id(doc):
    doc["_id"] = str(doc["_id"]) if "_id" in doc else None
    return doc


# Health
@app.get("/")
def read_root():
    return {"message": "Mitss Furniture API running"}


def _store_status(database: Optional[Database], url_var: str) -> dict:
    status = {
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv(url_var) else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    if database is None:
        return status
    status["database_name"] = database.name
    status["connection_status"] = "Connected"
    try:
        status["collections"] = database.list_collection_names()[:10]
        status["database"] = "✅ Connected & Working"
    except PyMongoError as e:
        status["database"] = f"⚠️ Connected but Error: {str(e)[:50]}"
    return status


@app.get("/test")
def test_database(catalog: Optional[Database] = Depends(get_catalog_db), orders: Optional[Database] = Depends(get_orders_db)):
    return {
        "backend": "✅ Running",
        "catalog": _store_status(catalog, "DATABASE_URL"),
        "orders": _store_status(orders, "ORDERS_DATABASE_URL"),
    }


# Products
@app.get("/api/products")
def list_products(
    category: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    skip: int = Query(0, ge=0),
    database: Database = Depends(require_catalog_db),
):
    query = {"category": category} if category else {}
    products = database[config.products_collection()]
    try:
        items = [stringify_id(p) for p in products.find(query).skip(skip).limit(limit)]
        total = products.count_documents(query)
    except PyMongoError:
        logger.exception("Error fetching products")
        raise HTTPException(status_code=500, detail="Failed to fetch products")
    return {"success": True, "data": items, "total": total, "limit": limit, "skip": skip}


@app.post("/api/products", status_code=201, dependencies=[Depends(require_admin)])
def create_product(payload: ProductSchema, database: Database = Depends(require_catalog_db)):
    try:
        pid = create_document(config.products_collection(), payload, database=database)
    except PyMongoError:
        logger.exception("Error creating product")
        raise HTTPException(status_code=500, detail="Failed to create product")
    return {"success": True, "data": {**payload.model_dump(), "_id": pid}}


@app.get("/api/products/{product_id}")
def get_product(product_id: str, database: Database = Depends(require_catalog_db)):
    prod = database[config.products_collection()].find_one({"_id": to_oid(product_id)})
    if not prod:
        raise HTTPException(404, "Product not found")
    return {"success": True, "data": stringify_id(prod)}


@app.put("/api/products/{product_id}", dependencies=[Depends(require_admin)])
def update_product(product_id: str, payload: ProductUpdate, database: Database = Depends(require_catalog_db)):
    changes = payload.changes()
    if not changes:
        raise HTTPException(400, "No fields to update")
    changes["updated_at"] = utcnow()
    result = database[config.products_collection()].update_one({"_id": to_oid(product_id)}, {"$set": changes})
    if result.matched_count == 0:
        raise HTTPException(404, "Product not found")
    return {"success": True, "message": "Product updated successfully"}


@app.delete("/api/products/{product_id}", dependencies=[Depends(require_admin)])
def delete_product(product_id: str, database: Database = Depends(require_catalog_db)):
    result = database[config.products_collection()].delete_one({"_id": to_oid(product_id)})
    if result.deleted_count == 0:
        raise HTTPException(404, "Product not found")
    return {"success": True, "message": "Product deleted successfully"}


# Search
@app.get("/api/search/suggestions")
def search_suggestions(q: Optional[str] = None, database: Optional[Database] = Depends(get_catalog_db)):
    query = normalize_query(q)
    if not query:
        return {"suggestions": []}
    if database is None:
        raise HTTPException(status_code=500, detail="Failed to fetch suggestions")
    try:
        candidates = list(database[config.products_collection()].find({}).limit(CANDIDATE_LIMIT))
    except PyMongoError:
        logger.exception("Search suggestions error")
        raise HTTPException(status_code=500, detail="Failed to fetch suggestions")
    return {"suggestions": rank_suggestions(query, candidates)}


# Reviews
@app.get("/api/reviews")
def get_reviews(product_id: str = Query(..., alias="productId"), database: Database = Depends(require_catalog_db)):
    reviews = database["reviews"].find({"product_id": product_id}).sort("created_at", DESCENDING)
    return {"success": True, "data": [stringify_id(r) for r in reviews]}


@app.post("/api/reviews", status_code=201)
def add_review(payload: ReviewSchema, database: Database = Depends(require_catalog_db)):
    if not database[config.products_collection()].find_one({"_id": to_oid(payload.product_id)}, {"_id": 1}):
        raise HTTPException(404, "Product not found")
    review = payload.model_copy(update={"helpful": 0, "not_helpful": 0})
    rid = create_document("reviews", review, database=database)
    return {"success": True, "review_id": rid}


@app.post("/api/reviews/helpful")
def mark_review_helpful(payload: HelpfulVote, database: Database = Depends(require_catalog_db)):
    field = "helpful" if payload.helpful else "not_helpful"
    try:
        result = database["reviews"].update_one({"_id": to_oid(payload.review_id)}, {"$inc": {field: 1}})
    except PyMongoError:
        logger.exception("Error updating review helpfulness")
        raise HTTPException(status_code=500, detail="Failed to update review")
    if result.matched_count == 0:
        raise HTTPException(404, "Review not found")
    return {"success": True, "message": "Thank you for your feedback"}


# Cart
def require_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


@app.get("/api/cart")
def get_cart(user_id: str = Depends(require_user_id), database: Database = Depends(require_catalog_db)):
    cart = database["carts"].find_one({"user_id": user_id})
    items = cart.get("items", []) if cart else []
    return {"items": [CartItem.model_validate(i).model_dump(by_alias=True) for i in items]}


@app.post("/api/cart")
def save_cart(payload: Cart, user_id: str = Depends(require_user_id), database: Database = Depends(require_catalog_db)):
    # The whole item list is replaced on every save
    items = [i.model_dump() for i in payload.items]
    database["carts"].update_one(
        {"user_id": user_id},
        {"$set": {"items": items, "updated_at": utcnow()}},
        upsert=True,
    )
    return {"success": True}


@app.delete("/api/cart")
def clear_cart(user_id: str = Depends(require_user_id), database: Database = Depends(require_catalog_db)):
    database["carts"].delete_one({"user_id": user_id})
    return {"success": True}


# Email
@app.post("/api/send-email")
def send_email(payload: EmailRequest, mailer: Mailer = Depends(get_mailer)):
    if payload.type != ORDER_CONFIRMATION:
        raise HTTPException(400, "Invalid email type")
    to = payload.data.get("email")
    if not to:
        raise HTTPException(400, "data.email: field required")
    result = mailer.send_order_confirmation(to, payload.data)
    if not result.success:
        raise HTTPException(500, result.error or "Failed to send email")
    return {"success": True, "message": "Order confirmation email sent successfully"}


# Analytics
@app.post("/api/analytics/track")
def track_event(payload: TrackEvent, tracker: EventTracker = Depends(get_tracker)):
    try:
        tracker.track(payload.event, payload.properties)
    except PyMongoError:
        logger.exception("Error recording analytics event %s", payload.event)
        raise HTTPException(status_code=500, detail="Failed to track event")
    return {"success": True}


app.include_router(admin_router)


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
