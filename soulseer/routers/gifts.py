from typing import Annotated, Literal

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.user import User
from soulseer.schemas.gift import (AddFundsRequest, BalanceResponse,
                                   GiftCatalogResponse, GiftHistoryResponse,
                                   GiftSendRequest, GiftSendResponse,
                                   WalletResponse)
from soulseer.services.gift_service import GiftService
from soulseer.utils.dependencies import get_current_user, get_gift_service
from soulseer.utils.router import get_router

router = get_router("virtual-gifts")
wallet_router = get_router("wallet")


@router.get("/catalog", response_model=GiftCatalogResponse, summary="Gift catalog")
async def catalog(service: Annotated[GiftService, Depends(get_gift_service)]):
    return service.catalog()


@router.get("/balance", response_model=BalanceResponse, summary="Coin balance")
async def balance(
    service: Annotated[GiftService, Depends(get_gift_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.balance(db, current_user)


@router.post(
    "/send",
    response_model=GiftSendResponse,
    summary="Send a gift",
    responses={
        400: {"description": "Unknown gift, self gift or insufficient coins"},
        404: {"description": "Recipient not found"},
    },
)
async def send_gift(
    data: GiftSendRequest,
    service: Annotated[GiftService, Depends(get_gift_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.send_gift(db, current_user, data)


@router.get("/history", response_model=GiftHistoryResponse, summary="Gift history")
async def history(
    service: Annotated[GiftService, Depends(get_gift_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
    direction: Literal["sent", "received", "all"] = "all",
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.history(db, current_user, direction, limit, offset)


@wallet_router.get("", response_model=WalletResponse, summary="My wallet")
async def wallet(
    service: Annotated[GiftService, Depends(get_gift_service)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return service.wallet(current_user)


@wallet_router.post("/add-funds", response_model=WalletResponse, summary="Buy coins")
async def add_funds(
    data: AddFundsRequest,
    service: Annotated[GiftService, Depends(get_gift_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """**amount** between 5 and 1000; every unit buys COINS_PER_UNIT coins"""
    return await service.add_funds(db, current_user, data.amount)
