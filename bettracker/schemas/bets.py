from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_text(v):
    if v is None:
        return None
    if isinstance(v, (int, float, Decimal)):
        return str(v)
    return v


# ---- raw extraction (permissive, boundary only) ----

class RawLeg(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str = ""
    market: str = ""
    selection: str = ""
    odds: str = ""

    @field_validator("event", "market", "selection", "odds", mode="before")
    @classmethod
    def _text(cls, v):
        v = _as_text(v)
        return "" if v is None else v


class RawExtraction(BaseModel):
    """What the extraction collaborator hands us. Nothing here is trusted."""

    model_config = ConfigDict(extra="ignore")

    ticket_number: Optional[str] = None
    sportsbook: Optional[str] = None
    type: Optional[str] = None
    odds: Optional[str] = None
    risk: Optional[Decimal] = None
    to_win: Optional[Decimal] = None
    status: Optional[str] = None
    legs: List[RawLeg] = Field(default_factory=list)

    @field_validator("ticket_number", "sportsbook", "type", "odds", "status", mode="before")
    @classmethod
    def _text(cls, v):
        return _as_text(v)

    @field_validator("risk", "to_win", mode="before")
    @classmethod
    def _money(cls, v):
        # "$1,250.00" -> 1250.00
        if isinstance(v, str):
            cleaned = v.replace("$", "").replace(",", "").strip()
            if not cleaned:
                return None
            try:
                return Decimal(cleaned)
            except InvalidOperation:
                raise ValueError(f"not an amount: {v!r}")
        return v

    @field_validator("legs", mode="before")
    @classmethod
    def _legs(cls, v):
        return [] if v is None else v


# ---- normalized shapes ----

class BetLegData(BaseModel):
    event: str = ""
    market: str = ""
    selection: str = ""
    odds: str = ""


class ParsedBet(BaseModel):
    """Strict internal shape produced by services.normalize."""

    ticket_number: str = ""
    sportsbook: Optional[str] = None
    type: str
    odds: str
    risk: Decimal
    to_win: Decimal
    status: str
    legs: List[BetLegData] = Field(default_factory=list)


class ParsedBetOut(BaseModel):
    ticket_number: str
    sportsbook: Optional[str] = None
    type: str
    odds: str
    risk: float
    to_win: float
    status: str
    legs: List[BetLegData] = Field(default_factory=list)

    @classmethod
    def from_parsed(cls, p: ParsedBet) -> "ParsedBetOut":
        return cls(
            ticket_number=p.ticket_number,
            sportsbook=p.sportsbook,
            type=p.type,
            odds=p.odds,
            risk=float(p.risk),
            to_win=float(p.to_win),
            status=p.status,
            legs=p.legs,
        )


# ---- records ----

class ParticipantOut(BaseModel):
    name: str
    stake: float
    payout_due: float = 0
    is_paid: bool = False


class BetOut(BaseModel):
    id: str
    ticket_number: str
    sportsbook: Optional[str] = None
    type: str
    odds: str
    risk: float
    to_win: float
    status: str
    legs: List[BetLegData] = Field(default_factory=list)
    participants: List[ParticipantOut] = Field(default_factory=list)
    created_at: datetime
    settled_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, bet) -> "BetOut":
        return cls(
            id=bet.id,
            ticket_number=bet.ticket_number,
            sportsbook=bet.sportsbook,
            type=bet.type,
            odds=bet.odds,
            risk=float(bet.risk),
            to_win=float(bet.to_win),
            status=bet.status,
            legs=[
                BetLegData(event=l.event, market=l.market, selection=l.selection, odds=l.odds)
                for l in bet.legs
            ],
            participants=[
                ParticipantOut(
                    name=p.participant_name,
                    stake=float(p.stake),
                    payout_due=float(p.payout_due or 0),
                    is_paid=bool(p.is_paid),
                )
                for p in bet.participants
            ],
            created_at=bet.created_at,
            settled_at=bet.settled_at,
        )


class BetCreateIn(BaseModel):
    bet_data: RawExtraction
    participants_text: str = Field(min_length=1)


class ActiveBetsOut(BaseModel):
    success: bool = True
    bets: List[BetOut]


# ---- matching ----

class MatchIn(BaseModel):
    bet_data: RawExtraction
    ticket_number: Optional[str] = None


class MatchOut(BaseModel):
    id: str
    confidence: int
    strategy: str
    bet_data: BetOut
    created_at: datetime

    @classmethod
    def from_candidate(cls, c) -> "MatchOut":
        return cls(
            id=c.bet_id,
            confidence=c.confidence,
            strategy=c.strategy,
            bet_data=BetOut.from_record(c.record),
            created_at=c.record.created_at,
        )


class MatchListOut(BaseModel):
    success: bool = True
    matches: List[MatchOut]


# ---- settlement ----

class SettleIn(BaseModel):
    bet_id: str
    status: str


class WinnerOut(BaseModel):
    name: str
    profit: float


class LoserOut(BaseModel):
    name: str
    loss: float


class SettlementOut(BaseModel):
    bet_id: str
    ticket_number: str
    status: str
    risk: float
    total_payout: float
    winners: List[WinnerOut] = Field(default_factory=list)
    losers: List[LoserOut] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, s) -> "SettlementOut":
        return cls(
            bet_id=s.bet_id,
            ticket_number=s.ticket_number,
            status=s.status,
            risk=float(s.risk),
            total_payout=float(s.total_payout),
            winners=[WinnerOut(name=n, profit=float(v)) for n, v in s.winners],
            losers=[LoserOut(name=n, loss=float(v)) for n, v in s.losers],
        )


class SettleOut(BaseModel):
    success: bool = True
    settlement: SettlementOut


class BetCreateOut(BaseModel):
    success: bool = True
    bet: BetOut
    settlement: Optional[SettlementOut] = None


# ---- extraction / parsing ----

class ScreenshotIn(BaseModel):
    screenshot: str = Field(min_length=1)  # base64


class ParseBetOut(BaseModel):
    success: bool = True
    bet_data: ParsedBetOut


class ParticipantsParseIn(BaseModel):
    text: str
    total_risk: Optional[Decimal] = None


class ParsedParticipantOut(BaseModel):
    name: str
    stake: float


class ParticipantsParseOut(BaseModel):
    success: bool
    participants: List[ParsedParticipantOut]
    errors: List[str]
    is_equal_split: bool
