from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Column, DateTime, UniqueConstraint
from sqlalchemy.types import Numeric
from sqlmodel import Field

from soulseer.models.base import BaseModel


class ProductType(str, Enum):
    GUIDE = "GUIDE"
    MEDITATION = "MEDITATION"
    COURSE = "COURSE"
    EBOOK = "EBOOK"
    AUDIO = "AUDIO"
    VIDEO = "VIDEO"
    BUNDLE = "BUNDLE"


class ProductStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class PurchaseStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Product(BaseModel, table=True):
    """
    Digital content sold by a reader
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
    )

    product_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    reader_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)

    title: str = Field(max_length=200, nullable=False)
    description: str = Field(default="", nullable=False)
    product_type: ProductType = Field(default=ProductType.GUIDE)

    price: Decimal = Field(
        sa_column=Column(Numeric(10, 2, asdecimal=True), nullable=False),
    )
    original_price: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(10, 2, asdecimal=True)),
        description="list price before the reader's own markdown",
    )

    status: ProductStatus = Field(default=ProductStatus.DRAFT)
    thumbnail: Optional[str] = Field(default=None, max_length=500)
    content_url: Optional[str] = Field(default=None, max_length=500)
    sales_count: int = Field(default=0, nullable=False)


class Cart(BaseModel, table=True):
    """
    One shopping cart per user
    """

    __tablename__ = "carts"

    cart_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    user_id: int = Field(
        foreign_key="users.user_id",
        nullable=False,
        sa_column_kwargs={"unique": True},
    )

    coupon_code: Optional[str] = Field(default=None, max_length=50)


class CartItem(BaseModel, table=True):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", name="uq_cart_item_product"),
        CheckConstraint("quantity > 0", name="ck_cart_item_quantity_positive"),
    )

    item_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    cart_id: int = Field(foreign_key="carts.cart_id", nullable=False, index=True)
    product_id: int = Field(foreign_key="products.product_id", nullable=False)
    quantity: int = Field(default=1, nullable=False)


class Coupon(BaseModel, table=True):
    __tablename__ = "coupons"

    coupon_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    code: str = Field(max_length=50, nullable=False, sa_column_kwargs={"unique": True})
    discount_type: DiscountType = Field(default=DiscountType.PERCENTAGE)
    value: Decimal = Field(
        sa_column=Column(Numeric(10, 2, asdecimal=True), nullable=False),
        description="percent for PERCENTAGE, amount for FIXED",
    )
    is_active: bool = Field(default=True)
    expires_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False)))


class Purchase(BaseModel, table=True):
    """
    A product bought by a user (one row per product per checkout)
    """

    __tablename__ = "purchases"

    purchase_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    user_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)
    product_id: int = Field(foreign_key="products.product_id", nullable=False)
    transaction_id: Optional[int] = Field(default=None, foreign_key="transactions.transaction_id")

    quantity: int = Field(default=1, nullable=False)
    unit_price: Decimal = Field(
        sa_column=Column(Numeric(10, 2, asdecimal=True), nullable=False),
    )
    amount: Decimal = Field(
        sa_column=Column(Numeric(12, 2, asdecimal=True), nullable=False),
        description="charged amount after the checkout discount share",
    )
    status: PurchaseStatus = Field(default=PurchaseStatus.PENDING)
