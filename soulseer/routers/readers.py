from decimal import Decimal
from typing import Annotated, Literal, Optional

from fastapi import Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.user import ReaderStatus, SessionType, User
from soulseer.schemas.reader import (ReaderApplicationRequest,
                                     ReaderApplicationResponse,
                                     ReaderDetailResponse, ReaderListResponse,
                                     ReaderProfileUpdateRequest,
                                     ReaderResponse)
from soulseer.services.reader_service import ReaderService
from soulseer.utils.dependencies import (get_current_user, get_reader_service,
                                         require_reader)
from soulseer.utils.reader_search import ReaderFilters
from soulseer.utils.router import get_router

router = get_router("readers")

SortOption = Literal["rating", "experience", "price-low", "price-high", "sessions"]


@router.get(
    "",
    response_model=ReaderListResponse,
    summary="Reader directory",
    description="Filter, sort and page readers. Every filter that is set must match.",
)
async def list_readers(
    service: Annotated[ReaderService, Depends(get_reader_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    q: Optional[str] = None,
    specialty: Optional[str] = None,
    min_rating: Annotated[Optional[float], Query(ge=0, le=5)] = None,
    max_price: Annotated[Optional[Decimal], Query(ge=0, description="max hourly rate")] = None,
    session_type: Optional[SessionType] = None,
    language: Optional[str] = None,
    status_filter: Annotated[Optional[ReaderStatus], Query(alias="status")] = None,
    sort: SortOption = "rating",
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    """
    - **q**: text match on name, bio or specialty
    - **specialty** / **language**: exact (case-insensitive) list membership
    - **min_rating**: average rating floor
    - **max_price**: hourly rate ceiling (cheapest per-minute rate x 60)
    - **session_type**: CHAT, CALL or VIDEO
    - **sort**: rating (default), experience, price-low, price-high, sessions
    """
    filters = ReaderFilters(
        q=q,
        specialty=specialty,
        min_rating=min_rating,
        max_price=max_price,
        session_type=session_type.value if session_type else None,
        language=language,
        status=status_filter.value if status_filter else None,
    )
    return await service.search(db, filters, sort, limit, offset)


@router.get("/available", response_model=ReaderListResponse, summary="Online readers")
async def available_readers(
    service: Annotated[ReaderService, Depends(get_reader_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_available(db, limit, offset)


@router.get("/me", response_model=ReaderResponse, summary="Own reader profile")
async def my_reader_profile(
    service: Annotated[ReaderService, Depends(get_reader_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_reader)],
):
    return await service.my_profile(db, current_user)


@router.put("/me", response_model=ReaderResponse, summary="Update own reader profile")
async def update_my_reader_profile(
    data: ReaderProfileUpdateRequest,
    service: Annotated[ReaderService, Depends(get_reader_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_reader)],
):
    return await service.update_own_profile(db, current_user, data)


@router.post(
    "/apply",
    response_model=ReaderApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to become a reader",
    responses={409: {"description": "Pending application exists or user is not a client"}},
)
async def apply(
    data: ReaderApplicationRequest,
    service: Annotated[ReaderService, Depends(get_reader_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.apply(db, current_user, data)


@router.get(
    "/{reader_id}",
    response_model=ReaderDetailResponse,
    summary="Reader profile",
    responses={404: {"description": "Reader not found"}},
)
async def get_reader(
    reader_id: int,
    service: Annotated[ReaderService, Depends(get_reader_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
):
    return await service.get_reader(db, reader_id)
