"""
Find the pending bet a settlement screenshot belongs to.

Two strategies, tried in order, first non-empty result wins:

1. ticket: pending bets of the owner with the same ticket number. Every hit
   scores 100 and fuzzy scoring is not attempted at all.
2. fuzzy: pending bets of the owner created inside the match window, scored
   on sportsbook / type / odds / risk / to-win (+ parlay leg count). Only
   candidates at or above the confidence threshold are kept.

Results are ordered by confidence, newest record first on ties, and cut to
the configured maximum.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Protocol

from bettracker.core.config import settings
from bettracker.core.timeutil import now_naive
from bettracker.models.bet import Bet, TYPE_PARLAY
from bettracker.schemas.bets import ParsedBet

logger = logging.getLogger(__name__)

STRATEGY_TICKET = "ticket"
STRATEGY_FUZZY = "fuzzy"

MAX_CONFIDENCE = 100

W_SPORTSBOOK = 20
W_TYPE = 20
W_ODDS = 20
W_RISK_EXACT = 25
W_RISK_CLOSE = 15
W_TO_WIN_EXACT = 15
W_TO_WIN_CLOSE = 10
W_PARLAY_LEGS = 10

EXACT = Decimal("0.01")
CLOSE = Decimal("1.00")


class CandidatePool(Protocol):
    async def pending_with_ticket(self, owner_id: str, ticket_number: str) -> List[Bet]: ...

    async def pending_created_since(self, owner_id: str, since: datetime) -> List[Bet]: ...


@dataclass
class MatchCandidate:
    bet_id: str
    confidence: int
    strategy: str
    record: Bet


def _amount_points(a: Decimal, b: Decimal, exact: int, close: int) -> int:
    diff = abs(Decimal(a) - Decimal(b))
    if diff < EXACT:
        return exact
    if diff < CLOSE:
        return close
    return 0


def score_candidate(parsed: ParsedBet, record: Bet) -> int:
    score = 0
    if parsed.sportsbook and record.sportsbook and parsed.sportsbook.lower() == record.sportsbook.lower():
        score += W_SPORTSBOOK
    if parsed.type == record.type:
        score += W_TYPE
    if parsed.odds == record.odds:
        score += W_ODDS
    score += _amount_points(parsed.risk, record.risk, W_RISK_EXACT, W_RISK_CLOSE)
    score += _amount_points(parsed.to_win, record.to_win, W_TO_WIN_EXACT, W_TO_WIN_CLOSE)
    if parsed.type == TYPE_PARLAY and record.type == TYPE_PARLAY and len(parsed.legs) == len(record.legs):
        score += W_PARLAY_LEGS
    return min(score, MAX_CONFIDENCE)


def rank(candidates: List[MatchCandidate], limit: int) -> List[MatchCandidate]:
    # two stable sorts: newest first, then confidence descending
    ordered = sorted(candidates, key=lambda c: c.record.created_at, reverse=True)
    ordered.sort(key=lambda c: c.confidence, reverse=True)
    return ordered[:limit]


class MatchScorer:
    def __init__(
        self,
        pool: CandidatePool,
        window_days: int = settings.MATCH_WINDOW_DAYS,
        min_confidence: int = settings.MATCH_MIN_CONFIDENCE,
        max_results: int = settings.MATCH_MAX_RESULTS,
    ):
        self.pool = pool
        self.window_days = window_days
        self.min_confidence = min_confidence
        self.max_results = max_results

    async def find_matches(
        self,
        parsed: ParsedBet,
        owner_id: str,
        ticket_number: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[MatchCandidate]:
        ticket = (ticket_number or parsed.ticket_number or "").strip()
        if ticket:
            exact = await self.pool.pending_with_ticket(owner_id, ticket)
            if exact:
                logger.info("ticket %r matched %d pending bet(s) for %s", ticket, len(exact), owner_id)
                return rank(
                    [MatchCandidate(b.id, MAX_CONFIDENCE, STRATEGY_TICKET, b) for b in exact],
                    self.max_results,
                )

        since = (now or now_naive()) - timedelta(days=self.window_days)
        pending = await self.pool.pending_created_since(owner_id, since)
        scored = []
        for b in pending:
            score = score_candidate(parsed, b)
            if score >= self.min_confidence:
                scored.append(MatchCandidate(b.id, score, STRATEGY_FUZZY, b))
        logger.info(
            "fuzzy match for %s: %d pending in window, %d above %d",
            owner_id, len(pending), len(scored), self.min_confidence,
        )
        return rank(scored, self.max_results)
