"""Модель уведомления"""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey, Boolean, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from database.connection import Base, PrimaryKey


class NotificationType(str, enum.Enum):
    """Тип уведомления"""
    BID_PLACED = "BID_PLACED"  # Новая ставка на лот продавца
    BID_OUTBID = "BID_OUTBID"  # Ставку пользователя перебили
    AUCTION_WON = "AUCTION_WON"
    AUCTION_ENDED = "AUCTION_ENDED"
    AUCTION_CANCELLED = "AUCTION_CANCELLED"
    AUCTION_CREATED = "AUCTION_CREATED"
    AUCTION_ENDING_SOON = "AUCTION_ENDING_SOON"


class Notification(Base):
    """Модель уведомления пользователя"""
    __tablename__ = "notifications"

    id = Column(PrimaryKey, primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(500), nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Связи
    user = relationship("User", backref="notifications")
