"""
Marketplace Service
Reader products, the shopping cart, coupons, checkout and purchase history
"""
from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.core.config import settings
from soulseer.models.notification import NotificationType
from soulseer.models.product import (Cart, CartItem, Product, ProductStatus,
                                     ProductType, Purchase, PurchaseStatus)
from soulseer.models.transaction import (Transaction, TransactionStatus,
                                         TransactionType)
from soulseer.models.user import User, UserRole
from soulseer.repositories.marketplace_repository import (CartRepository,
                                                          CouponRepository,
                                                          ProductRepository,
                                                          PurchaseRepository)
from soulseer.repositories.reader_repository import ReaderRepository
from soulseer.repositories.transaction_repository import TransactionRepository
from soulseer.schemas.common import Pagination
from soulseer.schemas.marketplace import (CartLine, CartSummary,
                                          CheckoutResponse,
                                          ContentStatsResponse,
                                          ProductCreateRequest,
                                          ProductListResponse,
                                          ProductResponse,
                                          ProductUpdateRequest,
                                          PurchaseListResponse,
                                          PurchaseResponse)
from soulseer.services.notification_service import (NotificationService,
                                                    commit_and_publish)
from soulseer.utils.datetime import utc_now_naive
from soulseer.utils.pricing import (ZERO, CartTotals, calculate_cart_totals,
                                    coupon_is_usable, split_revenue, to_money)

logger = logging.getLogger(__name__)


def allocate(amount: Decimal, weights: List[Decimal]) -> List[Decimal]:
    """
    Split amount across lines proportionally to weights; the last line takes
    the rounding remainder so the parts always add up to amount.
    """
    total_weight = sum(weights, ZERO)
    if not weights:
        return []
    if total_weight <= ZERO:
        return [ZERO] * (len(weights) - 1) + [to_money(amount)]

    parts = [to_money(amount * w / total_weight) for w in weights[:-1]]
    parts.append(to_money(amount) - sum(parts, ZERO))
    return parts


class MarketplaceService:
    """Marketplace service"""

    def __init__(self):
        self.product_repo = ProductRepository()
        self.cart_repo = CartRepository()
        self.coupon_repo = CouponRepository()
        self.purchase_repo = PurchaseRepository()
        self.transaction_repo = TransactionRepository()
        self.reader_repo = ReaderRepository()
        self.notifications = NotificationService()

    # ========== products ==========

    async def _product_or_404(self, db: AsyncSession, product_id: int) -> Product:
        product = await self.product_repo.get_by_id(db, product_id)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        return product

    async def _owned_product(self, db: AsyncSession, user: User, product_id: int) -> Product:
        product = await self._product_or_404(db, product_id)
        if product.reader_id != user.user_id and user.role != UserRole.ADMIN:
            raise HTTPException(status_code=403, detail="Not the owner of this product")
        return product

    async def list_products(
        self,
        db: AsyncSession,
        viewer: Optional[User] = None,
        product_type: Optional[ProductType] = None,
        reader_id: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        q: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> ProductListResponse:
        # owners see their own drafts and archived items
        owner_view = viewer is not None and reader_id is not None and viewer.user_id == reader_id
        rows, total = await self.product_repo.list_products(
            db, product_type, reader_id, min_price, max_price, q,
            status=None if owner_view else ProductStatus.ACTIVE,
            skip=offset, limit=limit,
        )
        return ProductListResponse(
            products=[ProductResponse.model_validate(p) for p in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def get_product(self, db: AsyncSession, product_id: int, viewer: Optional[User] = None) -> ProductResponse:
        product = await self._product_or_404(db, product_id)
        is_owner = viewer is not None and (viewer.user_id == product.reader_id or viewer.role == UserRole.ADMIN)
        if product.status != ProductStatus.ACTIVE and not is_owner:
            raise HTTPException(status_code=404, detail="Product not found")
        return ProductResponse.model_validate(product)

    async def create_product(self, db: AsyncSession, user: User, data: ProductCreateRequest) -> ProductResponse:
        product = await self.product_repo.create(db, Product(reader_id=user.user_id, **data.model_dump()))
        await db.commit()
        logger.info(f"Product created: id={product.product_id} reader={user.user_id}")
        return ProductResponse.model_validate(product)

    async def update_product(
        self, db: AsyncSession, user: User, product_id: int, data: ProductUpdateRequest
    ) -> ProductResponse:
        product = await self._owned_product(db, user, product_id)
        nulls = data.null_fields()
        if nulls:
            raise HTTPException(status_code=400, detail=f"{', '.join(nulls)} cannot be null")
        changes = data.changes()
        if not changes:
            raise HTTPException(status_code=400, detail="Nothing to update")
        for key, value in changes.items():
            setattr(product, key, value)
        product = await self.product_repo.update(db, product)
        await db.commit()
        return ProductResponse.model_validate(product)

    async def archive_product(self, db: AsyncSession, user: User, product_id: int) -> ProductResponse:
        product = await self._owned_product(db, user, product_id)
        product.status = ProductStatus.ARCHIVED
        product = await self.product_repo.update(db, product)
        await db.commit()
        logger.info(f"Product archived: id={product_id}")
        return ProductResponse.model_validate(product)

    # ========== content moderation (admin) ==========

    async def moderation_list(
        self,
        db: AsyncSession,
        product_type: Optional[ProductType] = None,
        status: Optional[ProductStatus] = None,
        reader_id: Optional[int] = None,
        q: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> ProductListResponse:
        """Every product regardless of status unless status is given"""
        rows, total = await self.product_repo.list_products(
            db, product_type, reader_id, q=q, status=status, skip=offset, limit=limit,
        )
        return ProductListResponse(
            products=[ProductResponse.model_validate(p) for p in rows],
            pagination=Pagination.of(total, limit, offset),
        )

    async def set_content_status(
        self, db: AsyncSession, admin: User, product_id: int, status: ProductStatus
    ) -> ProductResponse:
        product = await self._product_or_404(db, product_id)
        previous = product.status
        if previous == status:
            return ProductResponse.model_validate(product)

        product.status = status
        product = await self.product_repo.update(db, product)
        verb = {ProductStatus.ACTIVE: "published", ProductStatus.ARCHIVED: "archived"}.get(status, "moved to draft")
        await self.notifications.notify(
            db, product.reader_id, NotificationType.SYSTEM_UPDATE, "Product status changed",
            f'"{product.title}" was {verb} by a moderator',
            {"product_id": product.product_id, "status": status.value},
        )
        await commit_and_publish(db)

        logger.info(f"Product {product_id} {previous.value} -> {status.value} by admin {admin.user_id}")
        return ProductResponse.model_validate(product)

    async def content_stats(self, db: AsyncSession) -> ContentStatsResponse:
        by_status = {s.value: 0 for s in ProductStatus}
        by_status.update(await self.product_repo.count_grouped(db, Product.status))
        return ContentStatsResponse(
            total=sum(by_status.values()),
            by_status=by_status,
            by_type=await self.product_repo.count_grouped(db, Product.product_type),
            units_sold=await self.product_repo.units_sold(db),
            revenue=to_money(await self.purchase_repo.completed_revenue(db)),
            recent_updates=await self.product_repo.count_changed_since(db, utc_now_naive() - timedelta(days=7)),
        )

    # ========== cart ==========

    async def _totals(self, db: AsyncSession, cart: Cart) -> Tuple[List[Tuple[CartItem, Product]], CartTotals, Optional[str]]:
        """
        Cart lines plus totals. A coupon that stopped being usable is ignored.
        """
        lines = await self.cart_repo.items_with_products(db, cart.cart_id)
        coupon = await self.coupon_repo.get_by_code(db, cart.coupon_code) if cart.coupon_code else None
        usable = coupon if coupon_is_usable(coupon, utc_now_naive()) else None

        totals = calculate_cart_totals(
            [(product.price, item.quantity) for item, product in lines],
            settings.TAX_RATE,
            usable.discount_type if usable else None,
            usable.value if usable else None,
        )
        return lines, totals, usable.code if usable else None

    async def _summary(self, db: AsyncSession, cart: Cart) -> CartSummary:
        lines, totals, coupon_code = await self._totals(db, cart)
        return CartSummary(
            items=[
                CartLine(
                    product_id=product.product_id,
                    title=product.title,
                    product_type=product.product_type,
                    unit_price=to_money(product.price),
                    quantity=item.quantity,
                    line_total=to_money(product.price * item.quantity),
                )
                for item, product in lines
            ],
            item_count=totals.item_count,
            subtotal=totals.subtotal,
            coupon_code=coupon_code,
            discount=totals.discount,
            tax=totals.tax,
            total=totals.total,
        )

    async def get_cart(self, db: AsyncSession, user: User) -> CartSummary:
        cart = await self.cart_repo.get_or_create(db, user.user_id)
        summary = await self._summary(db, cart)
        await db.commit()
        return summary

    async def add_item(self, db: AsyncSession, user: User, product_id: int, quantity: int = 1) -> CartSummary:
        product = await self._product_or_404(db, product_id)
        if product.status != ProductStatus.ACTIVE:
            raise HTTPException(status_code=409, detail="Product is not available")
        if product.reader_id == user.user_id:
            raise HTTPException(status_code=400, detail="Cannot buy your own product")

        cart = await self.cart_repo.get_or_create(db, user.user_id)
        item = await self.cart_repo.get_item(db, cart.cart_id, product_id)
        if item:
            item.quantity += quantity
            await db.flush()
        else:
            await self.cart_repo.add_item(db, CartItem(cart_id=cart.cart_id, product_id=product_id, quantity=quantity))

        summary = await self._summary(db, cart)
        await db.commit()
        return summary

    async def set_quantity(self, db: AsyncSession, user: User, product_id: int, quantity: int) -> CartSummary:
        cart = await self.cart_repo.get_or_create(db, user.user_id)
        item = await self.cart_repo.get_item(db, cart.cart_id, product_id)
        if not item:
            raise HTTPException(status_code=404, detail="Item not in cart")

        if quantity < 1:
            await self.cart_repo.remove_item(db, item)
        else:
            item.quantity = quantity
            await db.flush()

        summary = await self._summary(db, cart)
        await db.commit()
        return summary

    async def remove_item(self, db: AsyncSession, user: User, product_id: int) -> CartSummary:
        return await self.set_quantity(db, user, product_id, 0)

    async def clear_cart(self, db: AsyncSession, user: User) -> CartSummary:
        cart = await self.cart_repo.get_or_create(db, user.user_id)
        await self.cart_repo.clear(db, cart)
        summary = await self._summary(db, cart)
        await db.commit()
        return summary

    async def apply_coupon(self, db: AsyncSession, user: User, code: str) -> CartSummary:
        coupon = await self.coupon_repo.get_by_code(db, code)
        if not coupon_is_usable(coupon, utc_now_naive()):
            raise HTTPException(status_code=400, detail="Invalid or expired coupon")

        cart = await self.cart_repo.get_or_create(db, user.user_id)
        cart.coupon_code = coupon.code
        await db.flush()
        summary = await self._summary(db, cart)
        await db.commit()
        return summary

    async def remove_coupon(self, db: AsyncSession, user: User) -> CartSummary:
        cart = await self.cart_repo.get_or_create(db, user.user_id)
        cart.coupon_code = None
        await db.flush()
        summary = await self._summary(db, cart)
        await db.commit()
        return summary

    # ========== checkout ==========

    async def _record_purchase(
        self,
        db: AsyncSession,
        user: User,
        lines: List[Tuple[Product, int]],
        totals: CartTotals,
        coupon_code: Optional[str],
    ) -> CheckoutResponse:
        """
        One COMPLETED PURCHASE transaction per reader in the order, one
        purchase row per product. The discount is spread over the lines by
        value and the tax over the readers by their net share, so the
        transactions add up to the order total.
        """
        net = totals.subtotal - totals.discount
        line_nets = allocate(net, [to_money(product.price * qty) for product, qty in lines])

        by_reader: Dict[int, List[Tuple[Product, int, Decimal]]] = {}
        for (product, quantity), amount in zip(lines, line_nets):
            by_reader.setdefault(product.reader_id, []).append((product, quantity, amount))

        reader_ids = sorted(by_reader)
        reader_nets = [sum((amount for _, _, amount in by_reader[r]), ZERO) for r in reader_ids]
        reader_taxes = allocate(totals.tax, reader_nets)
        suffix = f", coupon {coupon_code}" if coupon_code else ""

        transaction_ids = []
        purchases = []
        for reader_id, reader_net, reader_tax in zip(reader_ids, reader_nets, reader_taxes):
            reader_lines = by_reader[reader_id]
            reader_earnings, platform_revenue = split_revenue(reader_net, settings.READER_SHARE)
            transaction = await self.transaction_repo.create(db, Transaction(
                user_id=user.user_id,
                reader_id=reader_id,
                type=TransactionType.PURCHASE,
                status=TransactionStatus.COMPLETED,
                amount=to_money(reader_net + reader_tax),
                currency=settings.CURRENCY,
                reader_earnings=reader_earnings,
                platform_revenue=platform_revenue + reader_tax,
                description=f"{sum(q for _, q, _ in reader_lines)} item(s){suffix}",
            ))
            transaction_ids.append(transaction.transaction_id)

            profile = await self.reader_repo.get_by_user_id(db, reader_id)
            if profile:
                profile.total_earnings = to_money((profile.total_earnings or ZERO) + reader_earnings)

            for product, quantity, amount in reader_lines:
                purchase = await self.purchase_repo.create(db, Purchase(
                    user_id=user.user_id,
                    product_id=product.product_id,
                    transaction_id=transaction.transaction_id,
                    quantity=quantity,
                    unit_price=to_money(product.price),
                    amount=amount,
                    status=PurchaseStatus.COMPLETED,
                ))
                product.sales_count = (product.sales_count or 0) + quantity
                purchases.append(PurchaseResponse(
                    purchase_id=purchase.purchase_id,
                    product_id=product.product_id,
                    title=product.title,
                    product_type=product.product_type,
                    quantity=quantity,
                    unit_price=purchase.unit_price,
                    amount=purchase.amount,
                    status=purchase.status,
                    transaction_id=transaction.transaction_id,
                    created_at=purchase.created_at,
                ))

            await self.notifications.notify(
                db, reader_id, NotificationType.PAYMENT_RECEIVED,
                "New sale", f"{user.name} purchased: {', '.join(p.title for p, _, _ in reader_lines)}",
                {"transaction_id": transaction.transaction_id},
            )

        await db.flush()
        return CheckoutResponse(
            transaction_ids=transaction_ids,
            total=totals.total,
            purchases=purchases,
        )

    async def checkout(self, db: AsyncSession, user: User) -> CheckoutResponse:
        cart = await self.cart_repo.get_or_create(db, user.user_id)
        lines, totals, coupon_code = await self._totals(db, cart)
        if not lines:
            raise HTTPException(status_code=400, detail="Cart is empty")

        inactive = [p.title for _, p in lines if p.status != ProductStatus.ACTIVE or p.is_deleted]
        if inactive:
            raise HTTPException(status_code=409, detail=f"No longer available: {', '.join(inactive)}")

        result = await self._record_purchase(db, user, [(p, item.quantity) for item, p in lines], totals, coupon_code)
        await self.cart_repo.clear(db, cart)
        await commit_and_publish(db)

        logger.info(f"Checkout: user={user.user_id} tx={result.transaction_ids} total={result.total}")
        return result

    async def purchase_now(
        self, db: AsyncSession, user: User, product_id: int, quantity: int = 1, coupon_code: Optional[str] = None
    ) -> CheckoutResponse:
        product = await self._product_or_404(db, product_id)
        if product.status != ProductStatus.ACTIVE:
            raise HTTPException(status_code=409, detail="Product is not available")
        if product.reader_id == user.user_id:
            raise HTTPException(status_code=400, detail="Cannot buy your own product")

        coupon = None
        if coupon_code:
            coupon = await self.coupon_repo.get_by_code(db, coupon_code)
            if not coupon_is_usable(coupon, utc_now_naive()):
                raise HTTPException(status_code=400, detail="Invalid or expired coupon")

        totals = calculate_cart_totals(
            [(product.price, quantity)],
            settings.TAX_RATE,
            coupon.discount_type if coupon else None,
            coupon.value if coupon else None,
        )
        result = await self._record_purchase(db, user, [(product, quantity)], totals, coupon.code if coupon else None)
        await commit_and_publish(db)
        return result

    async def list_purchases(
        self,
        db: AsyncSession,
        user: User,
        status: Optional[PurchaseStatus] = None,
        product_type: Optional[ProductType] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> PurchaseListResponse:
        rows, total = await self.purchase_repo.list_for_user(db, user.user_id, status, product_type, offset, limit)
        return PurchaseListResponse(
            purchases=[
                PurchaseResponse(
                    purchase_id=p.purchase_id,
                    product_id=p.product_id,
                    title=product.title,
                    product_type=product.product_type,
                    quantity=p.quantity,
                    unit_price=p.unit_price,
                    amount=p.amount,
                    status=p.status,
                    transaction_id=p.transaction_id,
                    created_at=p.created_at,
                )
                for p, product in rows
            ],
            pagination=Pagination.of(total, limit, offset),
        )
