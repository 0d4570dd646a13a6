from datetime import date
from typing import Annotated, Optional

from fastapi import Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from soulseer.core.config import settings
from soulseer.database import get_session
from soulseer.models.user import User
from soulseer.schemas.availability import (BookableSlotsResponse,
                                           CalendarResponse, SlotCreateRequest,
                                           SlotListResponse, SlotResponse,
                                           SlotUpdateRequest)
from soulseer.services.availability_service import AvailabilityService
from soulseer.utils.dependencies import (get_availability_service,
                                         get_current_user, require_reader)
from soulseer.utils.router import get_router

router = get_router("availability")


@router.post(
    "",
    response_model=SlotResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create availability slot",
    responses={
        400: {"description": "Invalid times or dates"},
        409: {"description": "Overlaps an existing slot"},
    },
)
async def create_slot(
    data: SlotCreateRequest,
    service: Annotated[AvailabilityService, Depends(get_availability_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(require_reader)],
):
    return await service.create_slot(db, current_user, data)


@router.get("", response_model=SlotListResponse, summary="List a reader's slots")
async def list_slots(
    reader_id: int,
    service: Annotated[AvailabilityService, Depends(get_availability_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    day_of_week: Annotated[Optional[int], Query(ge=0, le=6)] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    """
    With both **start_date** and **end_date** the response also carries the
    expanded occurrences (UTC) between them.
    """
    return await service.list_slots(db, reader_id, day_of_week, start_date, end_date)


@router.get("/calendar", response_model=CalendarResponse, summary="Weekly calendar")
async def calendar(
    reader_id: int,
    service: Annotated[AvailabilityService, Depends(get_availability_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    day: Annotated[Optional[date], Query(alias="date")] = None,
    tz: Optional[str] = None,
):
    """
    Sunday-first week containing **date** (default today). Times are shown
    in **tz**, defaulting to the reader's timezone.
    """
    return await service.calendar(db, reader_id, day, tz)


@router.get("/slots", response_model=BookableSlotsResponse, summary="Bookable start times")
async def bookable_slots(
    reader_id: int,
    day: Annotated[date, Query(alias="date")],
    service: Annotated[AvailabilityService, Depends(get_availability_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    duration: Annotated[int, Query(ge=settings.MIN_SESSION_MINUTES, le=settings.MAX_SESSION_MINUTES)] = 30,
):
    return await service.bookable_slots(db, reader_id, day, duration)


@router.get(
    "/{slot_id}",
    response_model=SlotResponse,
    summary="Get slot",
    responses={404: {"description": "Slot not found"}},
)
async def get_slot(
    slot_id: int,
    service: Annotated[AvailabilityService, Depends(get_availability_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
):
    return await service.get_slot(db, slot_id)


@router.put(
    "/{slot_id}",
    response_model=SlotResponse,
    summary="Update slot",
    responses={
        403: {"description": "Not the owner"},
        404: {"description": "Slot not found"},
        409: {"description": "Overlaps an existing slot"},
    },
)
async def update_slot(
    slot_id: int,
    data: SlotUpdateRequest,
    service: Annotated[AvailabilityService, Depends(get_availability_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await service.update_slot(db, current_user, slot_id, data)


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete slot")
async def delete_slot(
    slot_id: int,
    service: Annotated[AvailabilityService, Depends(get_availability_service)],
    db: Annotated[AsyncSession, Depends(get_session)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    await service.delete_slot(db, current_user, slot_id)
