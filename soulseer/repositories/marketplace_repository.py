"""
Marketplace Repository
Products, carts, coupons and purchases
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.models.product import (Cart, CartItem, Coupon, Product,
                                     ProductStatus, ProductType, Purchase,
                                     PurchaseStatus)


class ProductRepository:

    async def create(self, db: AsyncSession, product: Product) -> Product:
        db.add(product)
        await db.flush()
        await db.refresh(product)
        return product

    async def get_by_id(self, db: AsyncSession, product_id: int) -> Optional[Product]:
        stmt = select(Product).where(Product.product_id == product_id, Product.is_deleted.is_(False))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(self, db: AsyncSession, product_ids: List[int]) -> dict:
        if not product_ids:
            return {}
        result = await db.execute(select(Product).where(Product.product_id.in_(product_ids)))
        return {p.product_id: p for p in result.scalars().all()}

    async def update(self, db: AsyncSession, product: Product) -> Product:
        await db.flush()
        await db.refresh(product)
        return product

    async def list_products(
        self,
        db: AsyncSession,
        product_type: Optional[ProductType] = None,
        reader_id: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        q: Optional[str] = None,
        status: Optional[ProductStatus] = ProductStatus.ACTIVE,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Product], int]:
        """
        Args:
            status: None lists every status (owner view)
        """
        conditions = [Product.is_deleted.is_(False)]
        if status is not None:
            conditions.append(Product.status == status)
        if product_type:
            conditions.append(Product.product_type == product_type)
        if reader_id is not None:
            conditions.append(Product.reader_id == reader_id)
        if min_price is not None:
            conditions.append(Product.price >= min_price)
        if max_price is not None:
            conditions.append(Product.price <= max_price)
        if q:
            pattern = f"%{q.lower()}%"
            conditions.append(or_(
                func.lower(Product.title).like(pattern),
                func.lower(Product.description).like(pattern),
            ))

        total = (await db.execute(select(func.count()).select_from(Product).where(*conditions))).scalar_one()
        stmt = (
            select(Product)
            .where(*conditions)
            .order_by(Product.created_at.desc(), Product.product_id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    async def count_grouped(self, db: AsyncSession, column) -> Dict[str, int]:
        result = await db.execute(
            select(column, func.count()).where(Product.is_deleted.is_(False)).group_by(column)
        )
        return {getattr(key, "value", key): count for key, count in result.all()}

    async def units_sold(self, db: AsyncSession) -> int:
        stmt = select(func.coalesce(func.sum(Product.sales_count), 0)).where(Product.is_deleted.is_(False))
        return int((await db.execute(stmt)).scalar_one())

    async def count_changed_since(self, db: AsyncSession, since: datetime) -> int:
        changed = func.coalesce(Product.updated_at, Product.created_at)
        stmt = select(func.count()).select_from(Product).where(Product.is_deleted.is_(False), changed >= since)
        return (await db.execute(stmt)).scalar_one()


class CartRepository:

    async def get_or_create(self, db: AsyncSession, user_id: int) -> Cart:
        result = await db.execute(select(Cart).where(Cart.user_id == user_id))
        cart = result.scalar_one_or_none()
        if cart is None:
            cart = Cart(user_id=user_id)
            db.add(cart)
            await db.flush()
            await db.refresh(cart)
        return cart

    async def items_with_products(self, db: AsyncSession, cart_id: int) -> List[Tuple[CartItem, Product]]:
        stmt = (
            select(CartItem, Product)
            .join(Product, Product.product_id == CartItem.product_id)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.item_id)
        )
        result = await db.execute(stmt)
        return [(item, product) for item, product in result.all()]

    async def get_item(self, db: AsyncSession, cart_id: int, product_id: int) -> Optional[CartItem]:
        stmt = select(CartItem).where(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def add_item(self, db: AsyncSession, item: CartItem) -> CartItem:
        db.add(item)
        await db.flush()
        await db.refresh(item)
        return item

    async def remove_item(self, db: AsyncSession, item: CartItem) -> None:
        await db.delete(item)
        await db.flush()

    async def clear(self, db: AsyncSession, cart: Cart) -> None:
        await db.execute(delete(CartItem).where(CartItem.cart_id == cart.cart_id))
        cart.coupon_code = None
        await db.flush()


class CouponRepository:

    async def create(self, db: AsyncSession, coupon: Coupon) -> Coupon:
        db.add(coupon)
        await db.flush()
        await db.refresh(coupon)
        return coupon

    async def get_by_code(self, db: AsyncSession, code: str) -> Optional[Coupon]:
        stmt = select(Coupon).where(func.upper(Coupon.code) == code.strip().upper())
        result = await db.execute(stmt)
        return result.scalar_one_or_none()


class PurchaseRepository:

    async def create(self, db: AsyncSession, purchase: Purchase) -> Purchase:
        db.add(purchase)
        await db.flush()
        await db.refresh(purchase)
        return purchase

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: int,
        status: Optional[PurchaseStatus] = None,
        product_type: Optional[ProductType] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> Tuple[List[Tuple[Purchase, Product]], int]:
        conditions = [Purchase.user_id == user_id, Purchase.is_deleted.is_(False)]
        if status:
            conditions.append(Purchase.status == status)
        if product_type:
            conditions.append(Product.product_type == product_type)

        base = select(Purchase, Product).join(Product, Product.product_id == Purchase.product_id).where(*conditions)
        total = (await db.execute(
            select(func.count()).select_from(Purchase)
            .join(Product, Product.product_id == Purchase.product_id)
            .where(*conditions)
        )).scalar_one()
        stmt = base.order_by(Purchase.created_at.desc(), Purchase.purchase_id.desc()).offset(skip).limit(limit)
        result = await db.execute(stmt)
        return [(p, prod) for p, prod in result.all()], total

    async def list_for_transaction(self, db: AsyncSession, transaction_id: int) -> List[Purchase]:
        result = await db.execute(select(Purchase).where(Purchase.transaction_id == transaction_id))
        return list(result.scalars().all())

    async def completed_revenue(self, db: AsyncSession) -> Decimal:
        stmt = select(func.coalesce(func.sum(Purchase.amount), 0)).where(
            Purchase.status == PurchaseStatus.COMPLETED, Purchase.is_deleted.is_(False)
        )
        return Decimal(str((await db.execute(stmt)).scalar_one()))
