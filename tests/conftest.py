import os
from datetime import timedelta
from decimal import Decimal

import pytest

# Настройки читаются при импорте config, поэтому URL задается до импорта приложения
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database.connection import Base
from database.models import Auction, AuctionStatus, User
from services.clock import utc_now


class FakeBot:
    """Заглушка aiogram.Bot: запоминает отправленные сообщения"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send_message(self, chat_id, text, **kwargs):
        if self.fail:
            raise RuntimeError("Telegram недоступен")
        self.sent.append((chat_id, text))


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'auction.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def make_user(session):
    counter = {"value": 0}

    async def _make_user(name: str = None) -> User:
        counter["value"] += 1
        user = User(
            telegram_id=1000 + counter["value"],
            username=name or f"student{counter['value']}",
            first_name=name,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_auction(session):
    async def _make_auction(
        seller: User,
        starting_price="10.00",
        buy_now_price=None,
        ends_in: timedelta = timedelta(days=1),
        started_ago: timedelta = timedelta(hours=1),
        status: AuctionStatus = AuctionStatus.ACTIVE,
        title: str = "Учебник по матанализу",
    ) -> Auction:
        now = utc_now()
        auction = Auction(
            user_id=seller.id,
            title=title,
            description="Почти новый, без пометок",
            category="BOOKS",
            condition="Like New",
            starting_price=Decimal(starting_price),
            current_price=Decimal(starting_price),
            buy_now_price=Decimal(buy_now_price) if buy_now_price is not None else None,
            status=status.value,
            start_time=now - started_ago,
            end_time=now + ends_in,
        )
        session.add(auction)
        await session.commit()
        await session.refresh(auction)
        return auction

    return _make_auction


@pytest.fixture
def bot():
    return FakeBot()
