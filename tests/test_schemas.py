from decimal import Decimal

import pytest
from pydantic import ValidationError

from schemas.auction import AuctionCreate
from schemas.bid import BidCreate


def auction_data(**overrides):
    data = {
        "title": "Велосипед",
        "description": "Городской велосипед, 21 скорость",
        "category": "SPORTS",
        "condition": "Good",
        "starting_price": "40.00",
    }
    data.update(overrides)
    return data


def test_auction_create_defaults():
    auction = AuctionCreate(**auction_data(title="  Велосипед  "))
    assert auction.title == "Велосипед"
    assert auction.duration_days == 7
    assert auction.buy_now_price is None


def test_buy_now_price_must_exceed_starting_price():
    with pytest.raises(ValidationError):
        AuctionCreate(**auction_data(buy_now_price="40.00"))
    assert AuctionCreate(**auction_data(buy_now_price="40.01")).buy_now_price == Decimal("40.01")


@pytest.mark.parametrize("overrides", [
    {"title": "ab"},
    {"description": "коротко"},
    {"category": "PETS"},
    {"condition": "Broken"},
    {"starting_price": "0.50"},
    {"starting_price": "10.001"},
    {"duration_days": 5},
])
def test_invalid_auction_data(overrides):
    with pytest.raises(ValidationError):
        AuctionCreate(**auction_data(**overrides))


def test_bid_amount_validation():
    assert BidCreate(auction_id=1, amount="15.5").amount == Decimal("15.5")
    for amount in ("0", "-1", "1000000", "1.234"):
        with pytest.raises(ValidationError):
            BidCreate(auction_id=1, amount=amount)
