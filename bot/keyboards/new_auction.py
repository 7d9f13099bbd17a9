"""Клавиатуры мастера создания аукциона"""
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder
from database.models.auction import AuctionCategory, ItemCondition

CATEGORY_LABELS = {
    AuctionCategory.ELECTRONICS: "💻 Электроника",
    AuctionCategory.CLOTHING: "👕 Одежда",
    AuctionCategory.BOOKS: "📚 Книги",
    AuctionCategory.FURNITURE: "🪑 Мебель",
    AuctionCategory.SPORTS: "⚽️ Спорт",
    AuctionCategory.JEWELRY: "💍 Украшения",
    AuctionCategory.ART: "🎨 Искусство",
    AuctionCategory.COLLECTIBLES: "🧸 Коллекционное",
    AuctionCategory.VEHICLES: "🚲 Транспорт",
    AuctionCategory.OTHER: "📦 Другое",
}

CONDITION_LABELS = {
    ItemCondition.NEW: "Новое",
    ItemCondition.LIKE_NEW: "Как новое",
    ItemCondition.GOOD: "Хорошее",
    ItemCondition.FAIR: "Удовлетворительное",
    ItemCondition.POOR: "Плохое",
}


def _abort_button() -> InlineKeyboardButton:
    return InlineKeyboardButton(text="❌ Отменить", callback_data="new:abort")


def get_category_keyboard() -> InlineKeyboardMarkup:
    """Выбор категории, по две в ряд"""
    builder = InlineKeyboardBuilder()
    for category, label in CATEGORY_LABELS.items():
        builder.add(InlineKeyboardButton(text=label, callback_data=f"new:category:{category.name}"))
    builder.adjust(2)
    builder.row(_abort_button())
    return builder.as_markup()


def get_condition_keyboard() -> InlineKeyboardMarkup:
    """Выбор состояния лота"""
    builder = InlineKeyboardBuilder()
    for condition, label in CONDITION_LABELS.items():
        builder.add(InlineKeyboardButton(text=label, callback_data=f"new:condition:{condition.name}"))
    builder.adjust(1)
    builder.row(_abort_button())
    return builder.as_markup()


def get_duration_keyboard(durations: list[int]) -> InlineKeyboardMarkup:
    """Выбор длительности торгов в днях"""
    builder = InlineKeyboardBuilder()
    for days in durations:
        builder.add(InlineKeyboardButton(text=f"{days} дн.", callback_data=f"new:duration:{days}"))
    builder.row(_abort_button())
    return builder.as_markup()


def get_confirm_keyboard() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.add(InlineKeyboardButton(text="✅ Опубликовать", callback_data="new:confirm"))
    builder.add(_abort_button())
    return builder.as_markup()
