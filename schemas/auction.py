"""Схемы проверки данных аукциона"""
from decimal import Decimal
from typing import Annotated, Optional
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from database.models.auction import AuctionCategory, ItemCondition
from config import settings

MAX_PRICE = Decimal("999999.99")

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 1000

# Цена лота: от $1, не больше двух знаков после запятой
Price = Annotated[Decimal, Field(ge=1, le=MAX_PRICE, decimal_places=2)]
price_adapter = TypeAdapter(Price)


class AuctionCreate(BaseModel):
    """Данные для создания аукциона"""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=TITLE_MIN_LENGTH, max_length=TITLE_MAX_LENGTH)
    description: str = Field(min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH)
    category: AuctionCategory
    condition: ItemCondition
    starting_price: Price
    buy_now_price: Optional[Price] = None
    duration_days: int = 7

    @field_validator("duration_days")
    @classmethod
    def check_duration(cls, value: int) -> int:
        if value not in settings.auction_durations_list:
            raise ValueError(
                f"Длительность должна быть одной из: {settings.AUCTION_DURATIONS_DAYS} дней"
            )
        return value

    @model_validator(mode="after")
    def check_buy_now_price(self) -> "AuctionCreate":
        # Цена мгновенной покупки должна быть выше начальной
        if self.buy_now_price is not None and self.buy_now_price <= self.starting_price:
            raise ValueError("Цена мгновенной покупки должна быть выше начальной цены")
        return self
