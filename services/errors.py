"""Ошибки предметной области и результат операций"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Generic, Optional, TypeVar
from services.pricing import format_currency

T = TypeVar("T")


class AuctionError(Exception):
    """Ожидаемая ошибка операции с аукционом, показывается пользователю"""
    code = "auction_error"
    default_message = "Операция недоступна"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(AuctionError):
    code = "not_found"
    default_message = "Аукцион не найден"


class AuctionNotActive(AuctionError):
    code = "auction_not_active"
    default_message = "Аукцион больше не активен"


class SellerCannotBid(AuctionError):
    code = "seller_cannot_bid"
    default_message = "Нельзя делать ставки на собственный лот"


class BidTooLow(AuctionError):
    """Ставка не выше текущей цены. Сообщение содержит текущую цену."""
    code = "bid_too_low"

    def __init__(self, current_price: Decimal):
        self.current_price = current_price
        super().__init__(
            f"Ставка должна быть выше текущей цены {format_currency(current_price)}"
        )


class InvalidBidAmount(AuctionError):
    code = "invalid_bid_amount"
    default_message = "Сумма ставки должна быть положительной, не больше двух знаков после запятой"


class BuyNowUnavailable(AuctionError):
    code = "buy_now_unavailable"
    default_message = "Мгновенная покупка для этого лота недоступна"


class AlreadyInWatchlist(AuctionError):
    code = "already_in_watchlist"
    default_message = "Аукцион уже в избранном"


class NotOwner(AuctionError):
    code = "not_owner"
    default_message = "Действие доступно только продавцу"


class AuctionStillActive(AuctionError):
    code = "auction_still_active"
    default_message = "Активный аукцион нельзя удалить"


@dataclass
class OperationResult(Generic[T]):
    """Результат операции: значение или ошибка предметной области"""
    value: Optional[T] = None
    error: Optional[AuctionError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, value: T = None) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: AuctionError) -> "OperationResult[T]":
        return cls(error=error)
