from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from soulseer.schemas.common import Pagination


class GiftCatalogItem(BaseModel):
    gift_id: str
    name: str
    emoji: str
    value: int = Field(..., description="price in coins")


class GiftCatalogResponse(BaseModel):
    gifts: List[GiftCatalogItem]


class GiftSendRequest(BaseModel):
    gift_id: str = Field(..., description="catalog key, e.g. 'heart'")
    recipient_id: int
    quantity: int = Field(1, ge=1, le=100)
    message: Optional[str] = Field(None, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "gift_id": "star",
                "recipient_id": 12,
                "quantity": 2,
                "message": "Thank you for the reading!"
            }
        }


class GiftResponse(BaseModel):
    gift_record_id: int
    gift_type: str
    sender_id: int
    receiver_id: int
    quantity: int
    total_value: int
    receiver_earnings: int
    message: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GiftSendResponse(BaseModel):
    gift: GiftResponse
    balance: int = Field(..., description="sender coins after the gift")


class GiftHistoryResponse(BaseModel):
    direction: Literal["sent", "received", "all"]
    gifts: List[GiftResponse]
    pagination: Pagination


class BalanceResponse(BaseModel):
    user_id: int
    coin_balance: int
    coins_sent: int
    coins_earned: int


class AddFundsRequest(BaseModel):
    amount: Decimal = Field(..., ge=5, le=1000, decimal_places=2, description="currency units")


class WalletResponse(BaseModel):
    user_id: int
    coin_balance: int
    coins_per_unit: int
    currency: str
    transaction_id: Optional[int] = Field(None, description="set after add-funds")
