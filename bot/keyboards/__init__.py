"""Клавиатуры бота"""
from .auction import get_auction_keyboard, get_history_keyboard
from .new_auction import (
    get_category_keyboard,
    get_condition_keyboard,
    get_confirm_keyboard,
    get_duration_keyboard,
)

__all__ = [
    "get_auction_keyboard",
    "get_history_keyboard",
    "get_category_keyboard",
    "get_condition_keyboard",
    "get_confirm_keyboard",
    "get_duration_keyboard",
]
