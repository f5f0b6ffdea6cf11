from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bettracker.core.errors import BetNotFoundError, PermissionDeniedError, StakeValidationError
from bettracker.core.timeutil import now_naive
from bettracker.models.bet import Bet, BetLeg, BetParticipant, STATUS_PENDING
from bettracker.schemas.bets import ParsedBet
from bettracker.services.stake_parser import STAKE_TOLERANCE, ParsedParticipant

logger = logging.getLogger(__name__)


def q2(v) -> Decimal:
    return Decimal(str(v)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def q6(v) -> Decimal:
    """Participant stake / payout scale (Numeric(18, 6))."""
    return Decimal(str(v)).quantize(Decimal("0.000001"), rounding=ROUND_HALF_UP)


def validate_stakes(participants: Sequence[ParsedParticipant], risk: Decimal) -> List[str]:
    """Creation-time checks; the sum check runs on the values that get stored."""
    errors: List[str] = []
    if not participants:
        errors.append("No valid participants found")
        return errors
    if risk is None or Decimal(risk) <= 0:
        errors.append("Bet risk must be greater than zero")
    names = [p.name for p in participants]
    if len(names) != len(set(names)):
        errors.append("Duplicate participant names found")
    for p in participants:
        if not p.name:
            errors.append("Participant name cannot be empty")
        if p.stake <= 0:
            errors.append(f"Stake for {p.name or '?'} must be greater than zero")
    if risk is not None and not errors:
        total = sum((q6(p.stake) for p in participants), Decimal("0"))
        if abs(total - q2(risk)) > STAKE_TOLERANCE:
            errors.append(f"Stakes must sum to bet risk amount (${q2(risk):.2f}), got ${total:.2f}")
    return errors


class BetStore:
    """
    Bet records scoped to one AsyncSession. Writes are flushed, never committed:
    the calling service owns the transaction.

    Also serves as the candidate pool for matching.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, bet_id: str) -> Bet:
        bet = await self.session.get(Bet, bet_id)
        if bet is None:
            raise BetNotFoundError(bet_id)
        return bet

    async def get_owned(self, bet_id: str, owner_id: str) -> Bet:
        bet = await self.get(bet_id)
        if bet.owner_id != owner_id:
            raise PermissionDeniedError("You do not have permission to settle this bet")
        return bet

    async def create(
        self,
        owner_id: str,
        parsed: ParsedBet,
        participants: Sequence[ParsedParticipant],
        payouts: Optional[Dict[str, Decimal]] = None,
    ) -> Bet:
        errors = validate_stakes(participants, parsed.risk)
        if errors:
            raise StakeValidationError(errors)

        now = now_naive()
        bet = Bet(
            owner_id=owner_id,
            ticket_number=parsed.ticket_number,
            sportsbook=parsed.sportsbook,
            type=parsed.type,
            odds=parsed.odds,
            risk=q2(parsed.risk),
            to_win=q2(parsed.to_win),
            status=parsed.status,
            created_at=now,
            settled_at=None if parsed.status == STATUS_PENDING else now,
            legs=[
                BetLeg(position=i, event=l.event, market=l.market, selection=l.selection, odds=l.odds)
                for i, l in enumerate(parsed.legs)
            ],
            participants=[
                BetParticipant(
                    participant_name=p.name,
                    stake=q6(p.stake),
                    payout_due=(payouts or {}).get(p.name, Decimal("0")),
                    is_paid=False,
                )
                for p in participants
            ],
        )
        self.session.add(bet)
        await self.session.flush()
        logger.info("bet %s created for owner %s (ticket=%r, status=%s)", bet.id, owner_id, bet.ticket_number, bet.status)
        return bet

    async def mark_settled(self, bet: Bet, status: str, payouts: Dict[str, Decimal]) -> bool:
        """
        Conditional pending -> status transition. Returns False when another
        writer got there first (zero rows matched), in which case nothing is written.
        """
        now = now_naive()
        rs = await self.session.execute(
            update(Bet)
            .where(Bet.id == bet.id, Bet.status == STATUS_PENDING)
            .values(status=status, settled_at=now)
            .execution_options(synchronize_session=False)
        )
        if rs.rowcount != 1:
            return False

        bet.status = status
        bet.settled_at = now
        for p in bet.participants:
            p.payout_due = payouts[p.participant_name]
        await self.session.flush()
        return True

    async def current_status(self, bet_id: str) -> Optional[str]:
        return await self.session.scalar(select(Bet.status).where(Bet.id == bet_id))

    # ---- candidate pool ----

    async def pending_with_ticket(self, owner_id: str, ticket_number: str) -> List[Bet]:
        rs = await self.session.execute(
            select(Bet)
            .where(
                Bet.owner_id == owner_id,
                Bet.status == STATUS_PENDING,
                Bet.ticket_number == ticket_number,
            )
            .order_by(Bet.created_at.desc())
        )
        return list(rs.scalars().all())

    async def pending_created_since(self, owner_id: str, since: datetime) -> List[Bet]:
        rs = await self.session.execute(
            select(Bet)
            .where(
                Bet.owner_id == owner_id,
                Bet.status == STATUS_PENDING,
                Bet.created_at >= since,
            )
            .order_by(Bet.created_at.desc())
        )
        return list(rs.scalars().all())

    async def active_for_owner(self, owner_id: str, limit: int = 100) -> List[Bet]:
        rs = await self.session.execute(
            select(Bet)
            .where(Bet.owner_id == owner_id, Bet.status == STATUS_PENDING)
            .order_by(Bet.created_at.desc())
            .limit(limit)
        )
        return list(rs.scalars().all())
