"""Модель избранного"""
from sqlalchemy import Column, BigInteger, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database.connection import Base, PrimaryKey


class Watchlist(Base):
    """Аукцион, за которым следит пользователь"""
    __tablename__ = "watchlist"

    id = Column(PrimaryKey, primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    auction_id = Column(BigInteger, ForeignKey("auctions.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Связи
    auction = relationship("Auction")

    __table_args__ = (
        UniqueConstraint("user_id", "auction_id", name="uq_watchlist_user_auction"),
    )
