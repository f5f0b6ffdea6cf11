"""
Ingestion boundary: turn a raw extraction into a strict ParsedBet.

Status and type strings coming out of the vision/LLM collaborator are free
form ("Won", "WIN", "Cashed out - Void", "2 Team Parlay", "Single"). They are
classified with ordered pattern tables; anything unrecognized falls back to
pending/straight and is reported on the data-quality logger.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence, Tuple

from bettracker.models.bet import (
    BET_STATUSES,
    BET_TYPES,
    STATUS_LOST,
    STATUS_PENDING,
    STATUS_PUSH,
    STATUS_VOID,
    STATUS_WON,
    TYPE_FUTURES,
    TYPE_PARLAY,
    TYPE_ROUND_ROBIN,
    TYPE_STRAIGHT,
    TYPE_TEASER,
)
from bettracker.schemas.bets import BetLegData, ParsedBet, RawExtraction

logger = logging.getLogger(__name__)
quality_logger = logging.getLogger("bettracker.data_quality")

# (substring, canonical) pairs, first hit wins
STATUS_TABLE: Tuple[Tuple[str, str], ...] = (
    ("win", STATUS_WON),
    ("won", STATUS_WON),
    ("loss", STATUS_LOST),
    ("lost", STATUS_LOST),
    ("void", STATUS_VOID),
    ("push", STATUS_PUSH),
)

TYPE_TABLE: Tuple[Tuple[str, str], ...] = (
    ("single", TYPE_STRAIGHT),
    ("straight", TYPE_STRAIGHT),
    ("parlay", TYPE_PARLAY),
    ("teaser", TYPE_TEASER),
    ("round", TYPE_ROUND_ROBIN),
    ("robin", TYPE_ROUND_ROBIN),
    ("future", TYPE_FUTURES),
)

AMERICAN_ODDS_RE = re.compile(r"^[+-]\d+$")
_BARE_NUMBER_RE = re.compile(r"^\d+$")


def _classify(
    raw: Optional[str],
    table: Sequence[Tuple[str, str]],
    valid: Sequence[str],
    fallback: str,
    field: str,
) -> str:
    value = (raw or "").strip()
    lowered = value.lower()
    for needle, canonical in table:
        if needle in lowered:
            return canonical
    if lowered in valid:
        return lowered
    quality_logger.warning("unrecognized bet %s %r, falling back to %r", field, raw, fallback)
    return fallback


def classify_status(raw: Optional[str]) -> str:
    return _classify(raw, STATUS_TABLE, BET_STATUSES, STATUS_PENDING, "status")


def classify_type(raw: Optional[str]) -> str:
    return _classify(raw, TYPE_TABLE, BET_TYPES, TYPE_STRAIGHT, "type")


def _half_up(v: Decimal) -> int:
    return int(v.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def odds_from_amounts(risk: Decimal, to_win: Decimal) -> str:
    """American odds implied by a risk/to-win pair. Both must be positive."""
    ratio = Decimal(to_win) / Decimal(risk)
    if ratio > 1:
        return f"+{_half_up(ratio * 100)}"
    if ratio < 1:
        return f"-{_half_up(100 / ratio)}"
    return "+100"


def normalize_odds(raw: Optional[str], risk: Optional[Decimal], to_win: Optional[Decimal]) -> str:
    odds = re.sub(r"\s+", "", raw or "")
    if AMERICAN_ODDS_RE.match(odds):
        return odds
    if _BARE_NUMBER_RE.match(odds):
        return f"+{odds}"

    if risk and to_win and risk > 0 and to_win > 0:
        fixed = odds_from_amounts(risk, to_win)
        if odds:
            logger.info("odds %r recomputed from risk/to_win as %s", raw, fixed)
        return fixed

    quality_logger.warning("odds %r are not American odds and cannot be recomputed", raw)
    return odds


def normalize_extraction(raw: RawExtraction) -> ParsedBet:
    risk = raw.risk if raw.risk is not None else Decimal("0")
    to_win = raw.to_win if raw.to_win is not None else Decimal("0")
    sportsbook = (raw.sportsbook or "").strip() or None

    return ParsedBet(
        ticket_number=(raw.ticket_number or "").strip(),
        sportsbook=sportsbook,
        type=classify_type(raw.type),
        odds=normalize_odds(raw.odds, risk, to_win),
        risk=risk,
        to_win=to_win,
        status=classify_status(raw.status),
        legs=[
            BetLegData(
                event=leg.event.strip(),
                market=leg.market.strip(),
                selection=leg.selection.strip(),
                odds=normalize_odds(leg.odds, None, None) if leg.odds else "",
            )
            for leg in raw.legs
        ],
    )
