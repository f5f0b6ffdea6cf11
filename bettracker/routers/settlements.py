from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bettracker.core.auth import get_current_owner_id
from bettracker.db.session import get_session
from bettracker.schemas.bets import BetOut, MatchOut, ParsedBet, ParsedBetOut, SettlementOut
from bettracker.schemas.settlements import ReconcileIn, ReconcileOut, ScreenshotReconcileIn
from bettracker.services.extraction import ExtractionClient, get_extraction_client
from bettracker.services.normalize import normalize_extraction
from bettracker.services.reconcile import Reconciler, ReconcileResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settlements", tags=["settlements"])


def to_out(result: ReconcileResult) -> ReconcileOut:
    return ReconcileOut(
        outcome=result.outcome,
        parsed=ParsedBetOut.from_parsed(result.parsed),
        bet=BetOut.from_record(result.bet) if result.bet is not None else None,
        settlement=SettlementOut.from_summary(result.settlement) if result.settlement else None,
        matches=[MatchOut.from_candidate(m) for m in result.matches],
    )


async def _reconcile(
        session: AsyncSession,
        owner_id: str,
        parsed: ParsedBet,
        participants_text: Optional[str],
        selected_bet_id: Optional[str],
        decline: bool,
) -> ReconcileOut:
    result = await Reconciler(session).reconcile(
        parsed,
        owner_id,
        participants_text=participants_text,
        selected_bet_id=selected_bet_id,
        decline=decline,
    )
    logger.info("reconcile for %s: ticket=%r -> %s", owner_id, parsed.ticket_number, result.outcome)
    return to_out(result)


@router.post("/reconcile", response_model=ReconcileOut)
async def reconcile(
        payload: ReconcileIn,
        session: AsyncSession = Depends(get_session),
        owner_id: str = Depends(get_current_owner_id),
):
    """
    One step of the settlement flow for already extracted bet data.
    Call again with selected_bet_id (or decline=true plus participants_text)
    after a needs_selection outcome.
    """
    parsed = normalize_extraction(payload.bet_data)
    return await _reconcile(
        session, owner_id, parsed,
        payload.participants_text, payload.selected_bet_id, payload.decline,
    )


@router.post("/screenshot", response_model=ReconcileOut)
async def reconcile_screenshot(
        payload: ScreenshotReconcileIn,
        session: AsyncSession = Depends(get_session),
        owner_id: str = Depends(get_current_owner_id),
        extractor: ExtractionClient = Depends(get_extraction_client),
):
    raw = await extractor.extract(payload.screenshot)
    parsed = normalize_extraction(raw)
    return await _reconcile(
        session, owner_id, parsed,
        payload.participants_text, payload.selected_bet_id, payload.decline,
    )
