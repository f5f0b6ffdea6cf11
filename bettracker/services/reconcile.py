"""
Settlement screenshot reconciliation.

    parsed status pending          -> create a pending record
    parsed status terminal         -> match against the owner's pending bets
        no candidate               -> create an already-settled record
        one ticket match at 100    -> settle it automatically
        anything else              -> hand the ranked list back for a human pick
    user picked a candidate        -> settle that one
    user declined every candidate  -> create an already-settled record

Creating always needs the participant text; without it the outcome is
needs_participants and nothing is written.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bettracker.core.errors import StakeValidationError
from bettracker.models.bet import Bet, STATUS_PENDING
from bettracker.schemas.bets import ParsedBet
from bettracker.services import stake_parser
from bettracker.services.bet_store import BetStore, q2, q6
from bettracker.services.matching import (
    MAX_CONFIDENCE,
    STRATEGY_TICKET,
    MatchCandidate,
    MatchScorer,
)
from bettracker.services.settlement import SettlementSummary, compute_payouts, settle, summary_for

logger = logging.getLogger(__name__)

OUTCOME_CREATED = "created"
OUTCOME_SETTLED = "settled"
OUTCOME_NEEDS_SELECTION = "needs_selection"
OUTCOME_NEEDS_PARTICIPANTS = "needs_participants"


@dataclass
class ReconcileResult:
    outcome: str
    parsed: ParsedBet
    bet: Optional[Bet] = None
    settlement: Optional[SettlementSummary] = None
    matches: List[MatchCandidate] = field(default_factory=list)


def should_auto_settle(matches: List[MatchCandidate]) -> bool:
    """Only a lone exact-ticket hit is unambiguous."""
    return (
        len(matches) == 1
        and matches[0].confidence == MAX_CONFIDENCE
        and matches[0].strategy == STRATEGY_TICKET
    )


class Reconciler:
    def __init__(self, session: AsyncSession, scorer: Optional[MatchScorer] = None):
        self.session = session
        self.store = BetStore(session)
        self.scorer = scorer or MatchScorer(self.store)

    async def create(
        self,
        parsed: ParsedBet,
        owner_id: str,
        participants_text: Optional[str],
        matches: Optional[List[MatchCandidate]] = None,
    ) -> ReconcileResult:
        if participants_text is None:
            return ReconcileResult(OUTCOME_NEEDS_PARTICIPANTS, parsed, matches=list(matches or []))

        parsed_stakes = stake_parser.parse(participants_text, total_risk=parsed.risk)
        if parsed_stakes.errors:
            raise StakeValidationError(parsed_stakes.errors)

        payouts = None
        settled = parsed.status != STATUS_PENDING
        if settled and parsed.risk > 0:
            stakes = [(p.name, q6(p.stake)) for p in parsed_stakes.participants]
            payouts = compute_payouts(stakes, q2(parsed.risk), q2(parsed.to_win), parsed.status)

        try:
            bet = await self.store.create(owner_id, parsed, parsed_stakes.participants, payouts)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        return ReconcileResult(
            OUTCOME_CREATED,
            parsed,
            bet=bet,
            settlement=summary_for(bet) if settled else None,
            matches=list(matches or []),
        )

    async def settle_record(
        self, parsed: ParsedBet, bet: Bet, matches: Optional[List[MatchCandidate]] = None
    ) -> ReconcileResult:
        try:
            summary = await settle(self.store, bet, parsed.status)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(
            "bet %s (ticket %s) settled %s from screenshot, total payout %.2f",
            bet.id, bet.ticket_number, summary.status, summary.total_payout,
        )
        return ReconcileResult(OUTCOME_SETTLED, parsed, bet=bet, settlement=summary, matches=list(matches or []))

    async def reconcile(
        self,
        parsed: ParsedBet,
        owner_id: str,
        participants_text: Optional[str] = None,
        selected_bet_id: Optional[str] = None,
        decline: bool = False,
    ) -> ReconcileResult:
        if parsed.status == STATUS_PENDING:
            return await self.create(parsed, owner_id, participants_text)

        if selected_bet_id:
            bet = await self.store.get_owned(selected_bet_id, owner_id)
            return await self.settle_record(parsed, bet)

        if decline:
            return await self.create(parsed, owner_id, participants_text)

        matches = await self.scorer.find_matches(parsed, owner_id)
        if not matches:
            return await self.create(parsed, owner_id, participants_text)

        if should_auto_settle(matches):
            return await self.settle_record(parsed, matches[0].record, matches)

        logger.info(
            "ambiguous settlement for ticket %r: %d candidate(s), best %d",
            parsed.ticket_number, len(matches), matches[0].confidence,
        )
        return ReconcileResult(OUTCOME_NEEDS_SELECTION, parsed, matches=matches)
