"""
SQLAlchemy ORM models for persistent storage.

Models mirror the dataclass models but add database persistence.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CardDB(Base):
    """
    A scratch card stored in the database.

    One row per (contract, token). The unique constraint is what makes
    concurrent provisioning of the same token resolve to a single card.
    """

    __tablename__ = "cards"
    __table_args__ = (
        UniqueConstraint("contract_address", "token_id", name="uq_card_contract_token"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token_id: Mapped[int] = mapped_column(BigInteger, index=True)
    contract_address: Mapped[str] = mapped_column(String(42), index=True)

    # Card face stored as JSON list of 12 cells
    grid: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    # Prize outcome: kind tag plus amount (decimal string) and asset for "amount"
    prize_kind: Mapped[str] = mapped_column(String(16))
    prize_amount: Mapped[str | None] = mapped_column(String(40), nullable=True)
    prize_asset: Mapped[str | None] = mapped_column(String(42), nullable=True)

    minter_address: Mapped[str] = mapped_column(String(42), index=True)

    revealed: Mapped[bool] = mapped_column(Boolean, default=False)
    revealed_by_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    revealed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    claimed: Mapped[bool] = mapped_column(Boolean, default=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<CardDB(token_id={self.token_id}, contract={self.contract_address})>"
