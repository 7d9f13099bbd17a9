"""Схемы проверки ставки"""
from decimal import Decimal
from pydantic import BaseModel, Field
from schemas.auction import MAX_PRICE


class BidCreate(BaseModel):
    """Ставка, введенная пользователем"""
    auction_id: int = Field(gt=0)
    amount: Decimal = Field(gt=0, ge=Decimal("0.01"), le=MAX_PRICE, decimal_places=2)


class BuyNowRequest(BaseModel):
    auction_id: int = Field(gt=0)
