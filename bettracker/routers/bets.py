from __future__ import annotations
import logging
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bettracker.core.auth import get_current_owner_id
from bettracker.db.session import get_session
from bettracker.schemas.bets import (
    ActiveBetsOut, BetCreateIn, BetCreateOut, BetOut,
    MatchIn, MatchListOut, MatchOut,
    ParseBetOut, ParsedBetOut, ScreenshotIn,
    SettleIn, SettleOut, SettlementOut,
)
from bettracker.services.bet_store import BetStore
from bettracker.services.extraction import ExtractionClient, get_extraction_client
from bettracker.services.matching import MatchScorer
from bettracker.services.normalize import normalize_extraction
from bettracker.services.reconcile import Reconciler
from bettracker.services.settlement import settle_bet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bets", tags=["bets"])


@router.post("", response_model=BetCreateOut, status_code=201)
async def add_bet(
        payload: BetCreateIn,
        session: AsyncSession = Depends(get_session),
        owner_id: str = Depends(get_current_owner_id),
):
    """
    Record a bet from (possibly user-corrected) extraction data:
      - status/type/odds normalized at the boundary
      - stakes parsed from participants_text and must sum to risk
      - a bet that is already settled gets its payouts right away
    """
    parsed = normalize_extraction(payload.bet_data)
    result = await Reconciler(session).create(parsed, owner_id, payload.participants_text)

    return BetCreateOut(
        bet=BetOut.from_record(result.bet),
        settlement=SettlementOut.from_summary(result.settlement) if result.settlement else None,
    )


@router.get("/active", response_model=ActiveBetsOut)
async def active_bets(
        limit: int = Query(100, ge=1, le=500),
        session: AsyncSession = Depends(get_session),
        owner_id: str = Depends(get_current_owner_id),
):
    bets = await BetStore(session).active_for_owner(owner_id, limit=limit)
    return ActiveBetsOut(bets=[BetOut.from_record(b) for b in bets])


@router.post("/match", response_model=MatchListOut)
async def find_matching_bets(
        payload: MatchIn,
        session: AsyncSession = Depends(get_session),
        owner_id: str = Depends(get_current_owner_id),
):
    parsed = normalize_extraction(payload.bet_data)
    matches = await MatchScorer(BetStore(session)).find_matches(
        parsed, owner_id, ticket_number=payload.ticket_number
    )
    out: List[MatchOut] = [MatchOut.from_candidate(m) for m in matches]
    return MatchListOut(matches=out)


@router.post("/settle", response_model=SettleOut)
async def settle(
        payload: SettleIn,
        session: AsyncSession = Depends(get_session),
        owner_id: str = Depends(get_current_owner_id),
):
    summary = await settle_bet(session, owner_id, payload.bet_id, payload.status)
    return SettleOut(settlement=SettlementOut.from_summary(summary))


@router.post("/parse", response_model=ParseBetOut)
async def parse_bet(
        payload: ScreenshotIn,
        owner_id: str = Depends(get_current_owner_id),
        extractor: ExtractionClient = Depends(get_extraction_client),
):
    raw = await extractor.extract(payload.screenshot)
    parsed = normalize_extraction(raw)
    logger.info("screenshot parsed for %s: ticket=%r status=%s", owner_id, parsed.ticket_number, parsed.status)
    return ParseBetOut(bet_data=ParsedBetOut.from_parsed(parsed))
