from decimal import Decimal
from types import SimpleNamespace

from bot.keyboards import get_auction_keyboard, get_history_keyboard


def callbacks(markup):
    return [[button.callback_data for button in row] for row in markup.inline_keyboard]


def test_auction_keyboard_with_buy_now():
    auction = SimpleNamespace(id=5, current_price=Decimal("10.00"), buy_now_price=Decimal("50.00"))

    assert callbacks(get_auction_keyboard(auction)) == [
        ["bid:amount:5:10.50", "bid:amount:5:11.00", "bid:amount:5:12.50"],
        ["auction:buynow:5"],
        ["auction:bids:5"],
        ["watch:add:5"],
    ]


def test_auction_keyboard_without_buy_now():
    auction = SimpleNamespace(id=5, current_price=Decimal("100.00"), buy_now_price=None)

    rows = callbacks(get_auction_keyboard(auction))
    assert rows[0] == ["bid:amount:5:102.50", "bid:amount:5:105.00", "bid:amount:5:112.50"]
    assert rows[1:] == [["auction:bids:5"], ["watch:add:5"]]


def test_history_keyboard():
    assert callbacks(get_history_keyboard(7)) == [["auction:show:7"]]
