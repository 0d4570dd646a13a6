from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, Column, Date
from sqlmodel import Field

from soulseer.models.base import BaseModel


class RecurrenceType(str, Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


class AvailabilitySlot(BaseModel, table=True):
    """
    Reader availability template
    - one-off slots live on specific_date
    - recurring slots repeat from specific_date (the anchor) until recurrence_end_date
    - times are wall-clock "HH:MM" in the reader's timezone
    - blocked slots carve time out of the open availability
    """

    __tablename__ = "availability_slots"
    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_availability_day_of_week"),
        CheckConstraint("start_time < end_time", name="ck_availability_time_range"),
    )

    slot_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        description="availability slot id",
        sa_column_kwargs={"autoincrement": True},
    )

    reader_id: int = Field(
        foreign_key="users.user_id",
        nullable=False,
        index=True,
        description="reader user id",
    )

    day_of_week: int = Field(
        nullable=False,
        description="0 = Sunday ... 6 = Saturday",
    )

    start_time: str = Field(max_length=5, nullable=False, description="HH:MM")
    end_time: str = Field(max_length=5, nullable=False, description="HH:MM")

    is_recurring: bool = Field(default=True)
    recurrence_type: RecurrenceType = Field(default=RecurrenceType.WEEKLY)

    specific_date: Optional[date] = Field(
        default=None,
        sa_column=Column(Date),
        description="date of a one-off slot, or first date of a recurring one",
    )

    recurrence_end_date: Optional[date] = Field(
        default=None,
        sa_column=Column(Date),
        description="last date a recurring slot may occur on",
    )

    is_blocked: bool = Field(default=False, description="time off rather than availability")
    notes: Optional[str] = Field(default=None, max_length=500)
