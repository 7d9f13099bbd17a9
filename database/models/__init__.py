"""Модели базы данных"""
from .user import User
from .auction import Auction, AuctionStatus, AuctionCategory, ItemCondition
from .bid import Bid
from .notification import Notification, NotificationType
from .watchlist import Watchlist

__all__ = [
    "User",
    "Auction",
    "AuctionStatus",
    "AuctionCategory",
    "ItemCondition",
    "Bid",
    "Notification",
    "NotificationType",
    "Watchlist",
]
