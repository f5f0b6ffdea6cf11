from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from bettracker.core.errors import AlreadySettledError, InvalidStatusError
from bettracker.models.bet import (
    Bet,
    STATUS_LOST,
    STATUS_PUSH,
    STATUS_VOID,
    STATUS_WON,
    TERMINAL_STATUSES,
)
from bettracker.services.bet_store import BetStore, q6

logger = logging.getLogger(__name__)


@dataclass
class SettlementSummary:
    bet_id: str
    ticket_number: str
    status: str
    risk: Decimal
    total_payout: Decimal
    winners: List[Tuple[str, Decimal]] = field(default_factory=list)  # (name, profit)
    losers: List[Tuple[str, Decimal]] = field(default_factory=list)   # (name, loss)
    payouts: Dict[str, Decimal] = field(default_factory=dict)


def check_terminal(status: str) -> str:
    if status not in TERMINAL_STATUSES:
        raise InvalidStatusError(status)
    return status


def payout_for(stake: Decimal, risk: Decimal, to_win: Decimal, status: str) -> Decimal:
    """
    won       -> stake * (to_win / risk)
    lost      -> 0
    push/void -> stake
    """
    stake = Decimal(stake)
    if status == STATUS_WON:
        return q6(stake * Decimal(to_win) / Decimal(risk))
    if status == STATUS_LOST:
        return Decimal("0")
    if status in (STATUS_PUSH, STATUS_VOID):
        return q6(stake)
    raise InvalidStatusError(status)


def compute_payouts(
    stakes: Iterable[Tuple[str, Decimal]], risk: Decimal, to_win: Decimal, status: str
) -> Dict[str, Decimal]:
    check_terminal(status)
    return {name: payout_for(stake, risk, to_win, status) for name, stake in stakes}


def summarize(
    bet_id: str,
    ticket_number: str,
    status: str,
    risk: Decimal,
    stakes: Iterable[Tuple[str, Decimal]],
    payouts: Dict[str, Decimal],
) -> SettlementSummary:
    s = SettlementSummary(
        bet_id=bet_id,
        ticket_number=ticket_number,
        status=status,
        risk=Decimal(risk),
        total_payout=sum(payouts.values(), Decimal("0")),
        payouts=dict(payouts),
    )
    for name, stake in stakes:
        paid = payouts[name]
        if paid > stake:
            s.winners.append((name, paid - stake))
        elif paid < stake:
            s.losers.append((name, stake - paid))
    return s


def _stakes(bet: Bet) -> List[Tuple[str, Decimal]]:
    return [(p.participant_name, Decimal(p.stake)) for p in bet.participants]


def summary_for(bet: Bet) -> SettlementSummary:
    """Summary of an already settled record, from its stored payouts."""
    payouts = {p.participant_name: Decimal(p.payout_due or 0) for p in bet.participants}
    return summarize(bet.id, bet.ticket_number, bet.status, bet.risk, _stakes(bet), payouts)


async def settle(store: BetStore, bet: Bet, status: str) -> SettlementSummary:
    """
    Move a pending record to a terminal status and write every participant's
    payout. Flushes only; the caller commits or rolls back.
    """
    check_terminal(status)
    if not bet.is_pending:
        raise AlreadySettledError(bet.id, bet.status)

    stakes = _stakes(bet)
    payouts = compute_payouts(stakes, bet.risk, bet.to_win, status)
    if not await store.mark_settled(bet, status, payouts):
        current = await store.current_status(bet.id)
        raise AlreadySettledError(bet.id, current or "unknown")

    return summarize(bet.id, bet.ticket_number, status, bet.risk, stakes, payouts)


async def settle_bet(session: AsyncSession, owner_id: str, bet_id: str, status: str) -> SettlementSummary:
    """Settle one bet in its own transaction (settle-bet endpoint)."""
    store = BetStore(session)
    try:
        bet = await store.get_owned(bet_id, owner_id)
        summary = await settle(store, bet, status)
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    logger.info(
        "bet %s (ticket %s) settled %s: risk %.2f, total payout %.2f",
        summary.bet_id, summary.ticket_number, summary.status, summary.risk, summary.total_payout,
    )
    return summary
