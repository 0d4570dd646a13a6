from typing import Annotated, Optional

from fastapi import Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.database import get_session
from soulseer.models.review import ReviewStatus
from soulseer.models.user import User
from soulseer.schemas.reader import ReviewSummary
from soulseer.schemas.review import (ReviewCreateRequest, ReviewListResponse,
                                     ReviewResponse, ReviewStatusUpdateRequest)
from soulseer.services.review_service import ReviewService
from soulseer.utils.dependencies import (get_current_user, get_review_service,
                                         require_admin)
from soulseer.utils.router import get_router

router = get_router("reviews")
admin_router = get_router("admin/reviews", tag="admin")


@router.post(
    "",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Review a completed session",
    responses={
        400: {"description": "Session not completed or already reviewed"},
        403: {"description": "Not the session's client"},
    },
)
async def create_review(
    data: ReviewCreateRequest,
    service: Annotated[ReviewService, Depends(get_review_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.create_review(db, current_user, data)


@router.get("", response_model=ReviewListResponse, summary="Published reviews")
async def list_reviews(
    service: Annotated[ReviewService, Depends(get_review_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    reader_id: Optional[int] = None,
    client_id: Optional[int] = None,
    min_rating: Annotated[Optional[int], Query(ge=1, le=5)] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_reviews(db, reader_id, client_id, min_rating, ReviewStatus.PUBLISHED, limit, offset)


@router.get("/summary/{reader_id}", response_model=ReviewSummary, summary="Rating summary")
async def review_summary(
    reader_id: int,
    service: Annotated[ReviewService, Depends(get_review_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
):
    return await service.summary(db, reader_id)


@admin_router.get("", response_model=ReviewListResponse, summary="All reviews")
async def admin_list_reviews(
    service: Annotated[ReviewService, Depends(get_review_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
    status_filter: Annotated[Optional[ReviewStatus], Query(alias="status")] = None,
    reader_id: Optional[int] = None,
    min_rating: Annotated[Optional[int], Query(ge=1, le=5)] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    return await service.list_reviews(db, reader_id, None, min_rating, status_filter, limit, offset)


@admin_router.patch("/{review_id}/status", response_model=ReviewResponse, summary="Moderate review")
async def set_review_status(
    review_id: int,
    data: ReviewStatusUpdateRequest,
    service: Annotated[ReviewService, Depends(get_review_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    _: Annotated[User, Depends(require_admin)],
):
    return await service.set_status(db, review_id, data.status)
