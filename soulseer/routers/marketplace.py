from decimal import Decimal
from typing import Annotated, Optional

from fastapi import Depends, Query, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.product import ProductStatus, ProductType, PurchaseStatus
from soulseer.models.user import User
from soulseer.schemas.marketplace import (CartItemRequest, CartQuantityRequest,
                                          CartSummary, CheckoutResponse,
                                          ContentStatsResponse,
                                          ContentStatusRequest,
                                          CouponRequest, DirectPurchaseRequest,
                                          ProductCreateRequest,
                                          ProductListResponse,
                                          ProductResponse,
                                          ProductUpdateRequest,
                                          PurchaseListResponse)
from soulseer.services.marketplace_service import MarketplaceService
from soulseer.utils.dependencies import (auth_scheme, get_current_user,
                                         get_marketplace_service,
                                         require_admin, require_reader,
                                         resolve_user_from_token)
from soulseer.utils.router import get_router

products_router = get_router("products")
cart_router = get_router("cart")
purchases_router = get_router("purchases")
content_router = get_router("admin/content", tag="admin")


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    db: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """Signed in user when a token is sent, None for anonymous browsing"""
    if credentials is None or not credentials.credentials:
        return None
    return await resolve_user_from_token(db, credentials.credentials)


# ----------------------------------------------------------------------
# products
# ----------------------------------------------------------------------
@products_router.get("", response_model=ProductListResponse, summary="Browse products")
async def list_products(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    viewer: Annotated[Optional[User], Depends(get_optional_user)],
    type: Optional[ProductType] = None,
    reader_id: Optional[int] = None,
    min_price: Annotated[Optional[Decimal], Query(ge=0)] = None,
    max_price: Annotated[Optional[Decimal], Query(ge=0)] = None,
    q: Optional[str] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    """Only ACTIVE products, except a reader browsing their own catalogue"""
    return await service.list_products(db, viewer, type, reader_id, min_price, max_price, q, limit, offset)


@products_router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED,
                      summary="Create product")
async def create_product(
    data: ProductCreateRequest,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_reader)],
):
    return await service.create_product(db, current_user, data)


@products_router.get("/{product_id}", response_model=ProductResponse, summary="Product detail")
async def get_product(
    product_id: int,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    viewer: Annotated[Optional[User], Depends(get_optional_user)],
):
    return await service.get_product(db, product_id, viewer)


@products_router.put("/{product_id}", response_model=ProductResponse, summary="Update product")
async def update_product(
    product_id: int,
    data: ProductUpdateRequest,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.update_product(db, current_user, product_id, data)


@products_router.delete("/{product_id}", response_model=ProductResponse, summary="Archive product")
async def archive_product(
    product_id: int,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.archive_product(db, current_user, product_id)


# ----------------------------------------------------------------------
# cart
# ----------------------------------------------------------------------
@cart_router.get("", response_model=CartSummary, summary="My cart")
async def get_cart(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.get_cart(db, current_user)


@cart_router.delete("", response_model=CartSummary, summary="Empty cart")
async def clear_cart(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.clear_cart(db, current_user)


@cart_router.post("/items", response_model=CartSummary, summary="Add to cart")
async def add_item(
    data: CartItemRequest,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.add_item(db, current_user, data.product_id, data.quantity)


@cart_router.patch("/items/{product_id}", response_model=CartSummary, summary="Change quantity")
async def set_quantity(
    product_id: int,
    data: CartQuantityRequest,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.set_quantity(db, current_user, product_id, data.quantity)


@cart_router.delete("/items/{product_id}", response_model=CartSummary, summary="Remove from cart")
async def remove_item(
    product_id: int,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.remove_item(db, current_user, product_id)


@cart_router.post("/coupon", response_model=CartSummary, summary="Apply coupon")
async def apply_coupon(
    data: CouponRequest,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.apply_coupon(db, current_user, data.code)


@cart_router.delete("/coupon", response_model=CartSummary, summary="Remove coupon")
async def remove_coupon(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.remove_coupon(db, current_user)


@cart_router.post(
    "/checkout",
    response_model=CheckoutResponse,
    summary="Checkout",
    responses={
        400: {"description": "Cart is empty"},
        409: {"description": "A product is no longer available"},
    },
)
async def checkout(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.checkout(db, current_user)


# ----------------------------------------------------------------------
# purchases
# ----------------------------------------------------------------------
@purchases_router.get("", response_model=PurchaseListResponse, summary="My purchases")
async def list_purchases(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    status_filter: Annotated[Optional[PurchaseStatus], Query(alias="status")] = None,
    product_type: Optional[ProductType] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_purchases(db, current_user, status_filter, product_type, limit, offset)


@purchases_router.post("", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED,
                       summary="Buy a single product")
async def purchase_now(
    data: DirectPurchaseRequest,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.purchase_now(db, current_user, data.product_id, data.quantity, data.coupon_code)


# ----------------------------------------------------------------------
# content moderation
# ----------------------------------------------------------------------
@content_router.get("/items", response_model=ProductListResponse, summary="All products for moderation")
async def moderation_list(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
    type: Optional[ProductType] = None,
    status_filter: Annotated[Optional[ProductStatus], Query(alias="status")] = None,
    reader_id: Optional[int] = None,
    search: Optional[str] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.moderation_list(db, type, status_filter, reader_id, search, limit, offset)


@content_router.get("/stats", response_model=ContentStatsResponse, summary="Catalogue stats")
async def content_stats(
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    return await service.content_stats(db)


@content_router.patch("/items/{product_id}/status", response_model=ProductResponse,
                      summary="Publish, unpublish or archive a product")
async def set_content_status(
    product_id: int,
    data: ContentStatusRequest,
    service: Annotated[MarketplaceService, Depends(get_marketplace_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_admin)],
):
    return await service.set_content_status(db, current_user, product_id, data.status)
