"""Модель ставки"""
from sqlalchemy import Column, BigInteger, DateTime, ForeignKey, Numeric, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database.connection import Base, PrimaryKey


class Bid(Base):
    """Модель ставки на аукционе.

    Ставки только добавляются: после записи строка не изменяется.
    """
    __tablename__ = "bids"

    id = Column(PrimaryKey, primary_key=True, index=True)
    auction_id = Column(BigInteger, ForeignKey("auctions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)  # Сумма ставки
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Связи
    auction = relationship("Auction", back_populates="bids")
    user = relationship("User", backref="bids")

    __table_args__ = (
        Index("ix_bids_auction_amount", "auction_id", "amount"),
    )
