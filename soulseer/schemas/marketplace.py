from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from soulseer.models.product import (ProductStatus, ProductType,
                                     PurchaseStatus)
from soulseer.schemas.common import Pagination, PartialUpdateRequest


class ProductCreateRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field("", max_length=5000)
    product_type: ProductType = Field(ProductType.GUIDE)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    original_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    status: ProductStatus = Field(ProductStatus.ACTIVE)
    thumbnail: Optional[str] = Field(None, max_length=500)
    content_url: Optional[str] = Field(None, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Full Moon Meditation",
                "description": "A 20 minute guided meditation",
                "product_type": "MEDITATION",
                "price": "12.99"
            }
        }


class ProductUpdateRequest(PartialUpdateRequest):
    NOT_NULL = ("title", "description", "product_type", "price", "status")

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    product_type: Optional[ProductType] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    original_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    status: Optional[ProductStatus] = None
    thumbnail: Optional[str] = Field(None, max_length=500)
    content_url: Optional[str] = Field(None, max_length=500)


class ProductResponse(BaseModel):
    product_id: int
    reader_id: int
    title: str
    description: str
    product_type: ProductType
    price: Decimal
    original_price: Optional[Decimal] = None
    status: ProductStatus
    thumbnail: Optional[str] = None
    sales_count: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    pagination: Pagination


class ContentStatusRequest(BaseModel):
    status: ProductStatus = Field(..., description="DRAFT, ACTIVE (published) or ARCHIVED")


class ContentStatsResponse(BaseModel):
    """
    Catalogue overview for the moderation desk
    """
    total: int
    by_status: Dict[str, int] = Field(..., description="every status, zero when empty")
    by_type: Dict[str, int] = Field(..., description="product types in use")
    units_sold: int
    revenue: Decimal = Field(..., description="completed purchase amounts")
    recent_updates: int = Field(..., description="products changed in the last 7 days")


class CartItemRequest(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1, le=99)


class CartQuantityRequest(BaseModel):
    quantity: int = Field(..., le=99, description="below 1 removes the item")


class CouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)


class CartLine(BaseModel):
    product_id: int
    title: str
    product_type: ProductType
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class CartSummary(BaseModel):
    """
    total = subtotal - discount + tax
    """
    items: List[CartLine]
    item_count: int = Field(..., description="sum of quantities")
    subtotal: Decimal
    coupon_code: Optional[str] = None
    discount: Decimal
    tax: Decimal
    total: Decimal


class PurchaseResponse(BaseModel):
    purchase_id: int
    product_id: int
    title: Optional[str] = None
    product_type: Optional[ProductType] = None
    quantity: int
    unit_price: Decimal
    amount: Decimal
    status: PurchaseStatus
    transaction_id: Optional[int] = None
    created_at: Optional[datetime] = None


class CheckoutResponse(BaseModel):
    transaction_ids: List[int] = Field(..., description="one PURCHASE transaction per reader")
    total: Decimal
    purchases: List[PurchaseResponse]


class PurchaseListResponse(BaseModel):
    purchases: List[PurchaseResponse]
    pagination: Pagination


class DirectPurchaseRequest(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1, le=99)
    coupon_code: Optional[str] = Field(None, max_length=50)
