"""Модель аукциона"""
from sqlalchemy import Column, BigInteger, DateTime, ForeignKey, String, Text, Numeric
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from database.connection import Base, PrimaryKey


class AuctionStatus(str, enum.Enum):
    """Статус аукциона"""
    ACTIVE = "ACTIVE"  # Идут торги
    ENDED = "ENDED"  # Завершен по времени или выкуплен
    CANCELLED = "CANCELLED"  # Отменен продавцом


class AuctionCategory(str, enum.Enum):
    """Категория лота"""
    ELECTRONICS = "ELECTRONICS"
    CLOTHING = "CLOTHING"
    BOOKS = "BOOKS"
    FURNITURE = "FURNITURE"
    SPORTS = "SPORTS"
    JEWELRY = "JEWELRY"
    ART = "ART"
    COLLECTIBLES = "COLLECTIBLES"
    VEHICLES = "VEHICLES"
    OTHER = "OTHER"


class ItemCondition(str, enum.Enum):
    """Состояние лота"""
    NEW = "New"
    LIKE_NEW = "Like New"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"


class Auction(Base):
    """Модель аукциона"""
    __tablename__ = "auctions"

    id = Column(PrimaryKey, primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)  # Продавец
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    condition = Column(String(50), nullable=False)
    starting_price = Column(Numeric(10, 2), nullable=False)  # Начальная цена
    current_price = Column(Numeric(10, 2), nullable=False)  # Текущая цена
    buy_now_price = Column(Numeric(10, 2), nullable=True)  # Цена мгновенной покупки
    winner_id = Column(BigInteger, ForeignKey("users.id"), nullable=True, index=True)
    status = Column(String(20), default=AuctionStatus.ACTIVE.value, nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Связи
    seller = relationship("User", foreign_keys=[user_id])
    winner = relationship("User", foreign_keys=[winner_id])
    bids = relationship(
        "Bid",
        back_populates="auction",
        order_by="Bid.created_at.desc()",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
