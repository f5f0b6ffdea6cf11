import uuid
from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import String, Integer, Numeric, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bettracker.core.timeutil import now_naive
from bettracker.db.session import Base

# bet.status
STATUS_PENDING = "pending"
STATUS_WON = "won"
STATUS_LOST = "lost"
STATUS_PUSH = "push"
STATUS_VOID = "void"
TERMINAL_STATUSES = (STATUS_WON, STATUS_LOST, STATUS_PUSH, STATUS_VOID)
BET_STATUSES = (STATUS_PENDING,) + TERMINAL_STATUSES

# bet.type
TYPE_STRAIGHT = "straight"
TYPE_PARLAY = "parlay"
TYPE_TEASER = "teaser"
TYPE_ROUND_ROBIN = "round_robin"
TYPE_FUTURES = "futures"
BET_TYPES = (TYPE_STRAIGHT, TYPE_PARLAY, TYPE_TEASER, TYPE_ROUND_ROBIN, TYPE_FUTURES)


def new_id() -> str:
    return uuid.uuid4().hex


class Bet(Base):
    __tablename__ = "bet"
    __table_args__ = (
        Index("ix_bet_owner_status_ticket", "owner_id", "status", "ticket_number"),
        Index("ix_bet_owner_status_created", "owner_id", "status", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ticket_number: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    sportsbook: Mapped[str | None] = mapped_column(String(64))
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=TYPE_STRAIGHT)
    odds: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    risk: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    to_win: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=now_naive)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime)

    legs: Mapped[List["BetLeg"]] = relationship(
        back_populates="bet", lazy="selectin", order_by="BetLeg.position"
    )
    participants: Mapped[List["BetParticipant"]] = relationship(
        back_populates="bet", lazy="selectin", order_by="BetParticipant.id"
    )

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING


class BetLeg(Base):
    __tablename__ = "bet_leg"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bet_id: Mapped[str] = mapped_column(ForeignKey("bet.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    event: Mapped[str] = mapped_column(String(255), default="")
    market: Mapped[str] = mapped_column(String(128), default="")
    selection: Mapped[str] = mapped_column(String(255), default="")
    odds: Mapped[str] = mapped_column(String(16), default="")

    bet: Mapped[Bet] = relationship(back_populates="legs")


class BetParticipant(Base):
    __tablename__ = "bet_participant"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bet_id: Mapped[str] = mapped_column(ForeignKey("bet.id"), nullable=False, index=True)
    participant_name: Mapped[str] = mapped_column(String(64), nullable=False)
    # stakes and payouts keep six places so equal splits still sum to risk
    stake: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    payout_due: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False, default=Decimal("0"))
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    bet: Mapped[Bet] = relationship(back_populates="participants")
