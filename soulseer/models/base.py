from datetime import datetime
from typing import Optional

from sqlalchemy.types import TIMESTAMP, Boolean, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy import func, text
from sqlmodel import SQLModel, Field
from pydantic import ConfigDict

from soulseer.utils.datetime import utc_now_naive

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class BaseModel(SQLModel):
    """
    Columns shared by every table:
    - is_deleted: soft delete flag
    - created_at: creation time (UTC)
    - updated_at: last modification time (UTC)
    """
    __abstract__ = True

    model_config = ConfigDict(from_attributes=True)

    is_deleted: bool = Field(
        default=False,
        sa_type=Boolean,
        sa_column_kwargs={
            "nullable": False,
            "server_default": text("false"),
            "comment": "soft delete flag",
        },
    )

    created_at: datetime = Field(
        default_factory=utc_now_naive,
        sa_type=TIMESTAMP(timezone=False),
        sa_column_kwargs={
            "nullable": False,
            "server_default": func.now(),
            "comment": "row creation time (UTC)",
        },
    )

    updated_at: Optional[datetime] = Field(
        default=None,
        sa_type=TIMESTAMP(timezone=False),
        sa_column_kwargs={
            "nullable": True,
            "server_default": func.now(),
            "onupdate": utc_now_naive,
            "comment": "row modification time (UTC)",
        },
    )
