"""
Database Schemas for Mitss Furniture

Stored documents use snake_case field names. Request and response bodies
use camelCase (aliases), matching what the storefront and admin panel send.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Product(CamelModel):
    """
    Furniture catalog entries
    Collection: "products" (overridable with PRODUCTS_COLLECTION)
    """
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, description="e.g. 'Dining Room', 'Seating'")
    price: float = Field(..., ge=0)
    description: str = Field(..., min_length=1)
    material: Optional[str] = Field(None, description="e.g. 'Wood & Metal'")
    images: List[str] = Field(default_factory=list, description="Image URLs, first one is the cover")
    in_stock: bool = Field(True)
    rating: float = Field(0, ge=0, le=5)
    review_count: int = Field(0, ge=0)
    is_exclusive: bool = Field(False, description="Exclusive pieces show a contact-for-price label")
    exclusive_label: Optional[str] = Field(None, description="e.g. 'Contact for Custom Price'")


class ProductUpdate(CamelModel):
    """Partial product edit from the admin panel; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    description: Optional[str] = Field(None, min_length=1)
    material: Optional[str] = None
    images: Optional[List[str]] = None
    in_stock: Optional[bool] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    review_count: Optional[int] = Field(None, ge=0)
    is_exclusive: Optional[bool] = None
    exclusive_label: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class Review(CamelModel):
    """
    Customer reviews
    Collection: "reviews"
    """
    product_id: str
    author: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    content: str
    helpful: int = Field(0, ge=0)
    not_helpful: int = Field(0, ge=0)


class HelpfulVote(CamelModel):
    review_id: str
    helpful: StrictBool


class CartItem(CamelModel):
    product_id: str
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    image: Optional[str] = None


class Cart(CamelModel):
    """
    Saved carts, one per customer
    Collection: "carts"
    """
    items: List[CartItem] = Field(default_factory=list)


class OrderUpdate(CamelModel):
    status: Optional[str] = None
    tracking_number: Optional[str] = None
    payment_status: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        # Empty strings are ignored, same as omitted fields
        return {k: v for k, v in self.model_dump().items() if v}


class BulkOrderUpdate(CamelModel):
    order_ids: List[str] = Field(..., min_length=1)
    status: str

    @field_validator("order_ids")
    @classmethod
    def ids_not_blank(cls, v: List[str]) -> List[str]:
        if any(not i.strip() for i in v):
            raise ValueError("must not contain empty ids")
        return v

    @field_validator("status")
    @classmethod
    def status_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Status is required")
        return v.strip()


class AdminLogin(BaseModel):
    password: str


class CustomerSummary(CamelModel):
    id: str
    name: str
    email: str
    total_orders: int
    total_spent: float
    last_order_date: Optional[datetime]
    average_order_value: float


class CustomerStats(CamelModel):
    total: int
    total_revenue: float


class EmailRequest(BaseModel):
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class TrackEvent(BaseModel):
    event: str = Field(..., min_length=1)
    properties: Dict[str, Any] = Field(default_factory=dict)
