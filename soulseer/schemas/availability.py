import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, Field

from soulseer.models.availability import RecurrenceType
from soulseer.schemas.common import PartialUpdateRequest


class SlotCreateRequest(BaseModel):
    """
    Availability slot
    - one-off: is_recurring=false plus specific_date
    - recurring: day_of_week (0=Sunday) and recurrence_type; specific_date is
      the first date (defaults to today in the reader's timezone)
    - times are HH:MM in the reader's timezone
    """
    day_of_week: Optional[int] = Field(None, ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: str = Field(..., description="HH:MM")
    end_time: str = Field(..., description="HH:MM")
    is_recurring: bool = Field(True)
    recurrence_type: RecurrenceType = Field(RecurrenceType.WEEKLY)
    specific_date: Optional[dt.date] = Field(None, description="one-off date or recurrence anchor")
    recurrence_end_date: Optional[dt.date] = Field(None, description="last date a recurring slot may occur")
    is_blocked: bool = Field(False, description="time off instead of availability")
    notes: Optional[str] = Field(None, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "day_of_week": 1,
                "start_time": "09:00",
                "end_time": "12:00",
                "is_recurring": True,
                "recurrence_type": "WEEKLY"
            }
        }


class SlotUpdateRequest(PartialUpdateRequest):
    NOT_NULL = ("start_time", "end_time", "is_recurring", "recurrence_type", "is_blocked")

    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurrence_type: Optional[RecurrenceType] = None
    specific_date: Optional[dt.date] = None
    recurrence_end_date: Optional[dt.date] = None
    is_blocked: Optional[bool] = None
    notes: Optional[str] = Field(None, max_length=500)


class SlotResponse(BaseModel):
    slot_id: int
    reader_id: int
    day_of_week: int
    start_time: str
    end_time: str
    is_recurring: bool
    recurrence_type: RecurrenceType
    specific_date: Optional[dt.date] = None
    recurrence_end_date: Optional[dt.date] = None
    is_blocked: bool
    notes: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class OccurrenceResponse(BaseModel):
    slot_id: Optional[int]
    date: dt.date = Field(..., description="local date in the reader's timezone")
    start: dt.datetime = Field(..., description="UTC")
    end: dt.datetime = Field(..., description="UTC")
    is_blocked: bool


class SlotListResponse(BaseModel):
    slots: List[SlotResponse]
    occurrences: Optional[List[OccurrenceResponse]] = Field(
        None, description="expanded occurrences when start_date and end_date are given"
    )


class CalendarSlot(BaseModel):
    slot_id: Optional[int]
    start_time: str = Field(..., description="HH:MM in the calendar timezone")
    end_time: str
    start_utc: dt.datetime
    end_utc: dt.datetime
    is_blocked: bool
    is_booked: bool


class CalendarDay(BaseModel):
    date: dt.date
    day_of_week: int = Field(..., description="0 = Sunday")
    slots: List[CalendarSlot]


class CalendarResponse(BaseModel):
    reader_id: int
    timezone: str
    week_start: dt.date = Field(..., description="Sunday")
    days: List[CalendarDay] = Field(..., description="exactly 7 days, Sunday first")


class BookableSlotsResponse(BaseModel):
    reader_id: int
    date: dt.date
    timezone: str
    duration_minutes: int
    slots: List[dt.datetime] = Field(..., description="bookable start times (UTC)")
