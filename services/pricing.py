"""Расчет минимальной ставки и шага быстрых ставок.

Функции носят рекомендательный характер: сервер принимает любую ставку
строго выше текущей цены, а эти значения используются только для подсказок
и кнопок быстрой ставки.
"""
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP

CENT = Decimal("0.01")

# Минимальный шаг: 5% от цены, но не меньше $1
MIN_INCREMENT_RATE = Decimal("0.05")
MIN_INCREMENT = Decimal("1.00")

# (верхняя граница цены, шаг) по возрастанию
INCREMENT_TIERS = (
    (Decimal("10"), Decimal("0.25")),
    (Decimal("50"), Decimal("0.50")),
    (Decimal("100"), Decimal("1.00")),
    (Decimal("500"), Decimal("2.50")),
    (Decimal("1000"), Decimal("5.00")),
    (Decimal("5000"), Decimal("10.00")),
    (Decimal("10000"), Decimal("25.00")),
)
TOP_INCREMENT = Decimal("50.00")

QUICK_BID_MULTIPLIERS = (1, 2, 5)


def to_money(value) -> Decimal:
    """Привести число к Decimal с точностью до цента"""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def minimum_bid(current_price) -> Decimal:
    """Рекомендуемая минимальная ставка, округленная вверх до цента"""
    price = Decimal(str(current_price))
    increment = max(price * MIN_INCREMENT_RATE, MIN_INCREMENT)
    return (price + increment).quantize(CENT, rounding=ROUND_CEILING)


def bid_increment(current_price) -> Decimal:
    """Шаг быстрой ставки в зависимости от текущей цены"""
    price = Decimal(str(current_price))
    for upper_bound, step in INCREMENT_TIERS:
        if price < upper_bound:
            return step
    return TOP_INCREMENT


def quick_bid_amounts(current_price) -> list[Decimal]:
    """Суммы для кнопок быстрой ставки: цена + шаг x1, x2, x5"""
    price = to_money(current_price)
    step = bid_increment(price)
    return [price + step * multiplier for multiplier in QUICK_BID_MULTIPLIERS]


def format_currency(amount) -> str:
    """Форматирование суммы: $1,234.50"""
    return f"${to_money(amount):,.2f}"
