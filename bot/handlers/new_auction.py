"""Мастер создания аукциона: /new"""
import html
from decimal import Decimal, InvalidOperation
from typing import Optional
from aiogram import Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, Message
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from config import settings
from database.models.auction import AuctionCategory, ItemCondition
from database.models.user import User
from schemas.auction import (
    AuctionCreate,
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    price_adapter,
)
from services.auction import create_auction
from services.pricing import format_currency
from bot.keyboards.new_auction import (
    CATEGORY_LABELS,
    CONDITION_LABELS,
    get_category_keyboard,
    get_condition_keyboard,
    get_confirm_keyboard,
    get_duration_keyboard,
)

router = Router()

SKIP_WORDS = {"-", "нет", "пропустить"}


class NewAuctionStates(StatesGroup):
    """Состояния мастера создания аукциона"""
    waiting_title = State()  # Название
    waiting_description = State()  # Описание
    waiting_category = State()  # Категория (кнопки)
    waiting_condition = State()  # Состояние лота (кнопки)
    waiting_starting_price = State()  # Начальная цена
    waiting_buy_now_price = State()  # Цена мгновенной покупки (можно пропустить)
    waiting_duration = State()  # Длительность торгов (кнопки)
    confirming = State()  # Подтверждение


def parse_price(text: str) -> Optional[Decimal]:
    """Цена из сообщения пользователя или None, если она некорректна"""
    cleaned = (text or "").strip().replace("$", "").replace(" ", "").replace(",", ".")
    try:
        return price_adapter.validate_python(Decimal(cleaned))
    except (InvalidOperation, ValidationError):
        return None


def build_auction_create(data: dict) -> AuctionCreate:
    """Собрать и проверить данные аукциона из состояния мастера"""
    return AuctionCreate(
        title=data["title"],
        description=data["description"],
        category=AuctionCategory[data["category"]],
        condition=ItemCondition[data["condition"]],
        starting_price=Decimal(data["starting_price"]),
        buy_now_price=Decimal(data["buy_now_price"]) if data.get("buy_now_price") else None,
        duration_days=data["duration_days"],
    )


def summary_text(auction: AuctionCreate) -> str:
    lines = [
        "📋 Проверьте лот:",
        "",
        f"<b>{html.escape(auction.title)}</b>",
        html.escape(auction.description),
        "",
        f"Категория: {CATEGORY_LABELS[auction.category]}",
        f"Состояние: {CONDITION_LABELS[auction.condition]}",
        f"Начальная цена: {format_currency(auction.starting_price)}",
    ]
    if auction.buy_now_price is not None:
        lines.append(f"Купить сейчас: {format_currency(auction.buy_now_price)}")
    lines.append(f"Длительность: {auction.duration_days} дн.")
    return "\n".join(lines)


@router.message(Command("new"))
async def cmd_new(message: Message, state: FSMContext):
    """Начать создание аукциона"""
    await state.clear()
    await state.set_state(NewAuctionStates.waiting_title)
    await message.answer(
        f"📝 Новый аукцион\n\nВведите название лота ({TITLE_MIN_LENGTH}–{TITLE_MAX_LENGTH} символов):"
    )


@router.callback_query(F.data == "new:abort")
async def abort_new(callback: CallbackQuery, state: FSMContext):
    await state.clear()
    await callback.message.edit_text("Создание аукциона отменено")
    await callback.answer()


@router.message(NewAuctionStates.waiting_title, F.text)
async def process_title(message: Message, state: FSMContext):
    """Обработка названия"""
    title = message.text.strip()
    if not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
        await message.answer(
            f"Название должно быть от {TITLE_MIN_LENGTH} до {TITLE_MAX_LENGTH} символов. Введите еще раз:"
        )
        return

    await state.update_data(title=title)
    await state.set_state(NewAuctionStates.waiting_description)
    await message.answer(
        f"Опишите лот ({DESCRIPTION_MIN_LENGTH}–{DESCRIPTION_MAX_LENGTH} символов):"
    )


@router.message(NewAuctionStates.waiting_description, F.text)
async def process_description(message: Message, state: FSMContext):
    """Обработка описания"""
    description = message.text.strip()
    if not DESCRIPTION_MIN_LENGTH <= len(description) <= DESCRIPTION_MAX_LENGTH:
        await message.answer(
            f"Описание должно быть от {DESCRIPTION_MIN_LENGTH} до {DESCRIPTION_MAX_LENGTH} символов. "
            f"Введите еще раз:"
        )
        return

    await state.update_data(description=description)
    await state.set_state(NewAuctionStates.waiting_category)
    await message.answer("Выберите категорию:", reply_markup=get_category_keyboard())


@router.callback_query(F.data.startswith("new:category:"), NewAuctionStates.waiting_category)
async def process_category(callback: CallbackQuery, state: FSMContext):
    category = callback.data.split(":")[2]
    if category not in AuctionCategory.__members__:
        await callback.answer("Неизвестная категория", show_alert=True)
        return

    await state.update_data(category=category)
    await state.set_state(NewAuctionStates.waiting_condition)
    await callback.message.edit_text("Выберите состояние лота:", reply_markup=get_condition_keyboard())
    await callback.answer()


@router.callback_query(F.data.startswith("new:condition:"), NewAuctionStates.waiting_condition)
async def process_condition(callback: CallbackQuery, state: FSMContext):
    condition = callback.data.split(":")[2]
    if condition not in ItemCondition.__members__:
        await callback.answer("Неизвестное состояние", show_alert=True)
        return

    await state.update_data(condition=condition)
    await state.set_state(NewAuctionStates.waiting_starting_price)
    await callback.message.edit_text("Введите начальную цену в долларах, например 25 или 25.50:")
    await callback.answer()


@router.message(NewAuctionStates.waiting_starting_price, F.text)
async def process_starting_price(message: Message, state: FSMContext):
    """Обработка начальной цены"""
    price = parse_price(message.text)
    if price is None:
        await message.answer("Цена должна быть от $1 до $999,999.99, не больше двух знаков после запятой:")
        return

    await state.update_data(starting_price=str(price))
    await state.set_state(NewAuctionStates.waiting_buy_now_price)
    await message.answer(
        "Введите цену мгновенной покупки (выше начальной) или «-», чтобы не предлагать ее:"
    )


@router.message(NewAuctionStates.waiting_buy_now_price, F.text)
async def process_buy_now_price(message: Message, state: FSMContext):
    """Обработка цены мгновенной покупки"""
    text = message.text.strip().lower()
    buy_now_price = None
    if text not in SKIP_WORDS:
        buy_now_price = parse_price(text)
        data = await state.get_data()
        if buy_now_price is None or buy_now_price <= Decimal(data["starting_price"]):
            await message.answer(
                f"Цена мгновенной покупки должна быть выше начальной "
                f"({format_currency(data['starting_price'])}). Введите еще раз или «-»:"
            )
            return

    await state.update_data(buy_now_price=str(buy_now_price) if buy_now_price is not None else None)
    await state.set_state(NewAuctionStates.waiting_duration)
    await message.answer(
        "Сколько дней идут торги?",
        reply_markup=get_duration_keyboard(settings.auction_durations_list)
    )


@router.callback_query(F.data.startswith("new:duration:"), NewAuctionStates.waiting_duration)
async def process_duration(callback: CallbackQuery, state: FSMContext):
    await state.update_data(duration_days=int(callback.data.split(":")[2]))

    try:
        auction_data = build_auction_create(await state.get_data())
    except ValidationError as e:
        await state.clear()
        await callback.message.edit_text(
            f"❌ {e.errors()[0].get('msg', 'Некорректные данные')}\n\nНачните заново: /new"
        )
        await callback.answer()
        return

    await state.set_state(NewAuctionStates.confirming)
    await callback.message.edit_text(summary_text(auction_data), reply_markup=get_confirm_keyboard())
    await callback.answer()


@router.callback_query(F.data == "new:confirm", NewAuctionStates.confirming)
async def confirm_new(callback: CallbackQuery, state: FSMContext, session: AsyncSession, user: User):
    """Публикация аукциона"""
    auction_data = build_auction_create(await state.get_data())
    await state.clear()

    auction = await create_auction(session, user.id, auction_data, bot=callback.bot)
    await callback.message.edit_text(
        f"✅ Аукцион #{auction.id} «{html.escape(auction.title)}» опубликован.\n"
        f"Торги завершатся {auction.end_time:%d.%m.%Y %H:%M} UTC.\n\n"
        f"Карточка лота: /auction {auction.id}"
    )
    await callback.answer()
