from typing import Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field

from soulseer.models.base import BaseModel


class VirtualGift(BaseModel, table=True):
    """
    Coins sent from one user to another as a named gift
    """

    __tablename__ = "virtual_gifts"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_gift_quantity_positive"),
    )

    gift_record_id: Optional[int] = Field(
        default=None,
        primary_key=True,
        sa_column_kwargs={"autoincrement": True},
    )

    gift_type: str = Field(max_length=30, nullable=False, description="catalog key")
    sender_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)
    receiver_id: int = Field(foreign_key="users.user_id", nullable=False, index=True)

    quantity: int = Field(default=1, nullable=False)
    total_value: int = Field(nullable=False, description="coins paid by the sender")
    receiver_earnings: int = Field(nullable=False, description="coins credited to the receiver")
    message: Optional[str] = Field(default=None, max_length=500)
