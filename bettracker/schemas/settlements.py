from typing import List, Optional

from pydantic import BaseModel, Field

from bettracker.schemas.bets import (
    BetOut,
    MatchOut,
    ParsedBetOut,
    RawExtraction,
    SettlementOut,
)


class ReconcileIn(BaseModel):
    bet_data: RawExtraction
    participants_text: Optional[str] = None  # needed whenever a record gets created
    selected_bet_id: Optional[str] = None    # user picked a match from the ranked list
    decline: bool = False                    # user rejected every match


class ScreenshotReconcileIn(BaseModel):
    screenshot: str = Field(min_length=1)
    participants_text: Optional[str] = None
    selected_bet_id: Optional[str] = None
    decline: bool = False


class ReconcileOut(BaseModel):
    success: bool = True
    outcome: str  # created | settled | needs_selection | needs_participants
    parsed: ParsedBetOut
    bet: Optional[BetOut] = None
    settlement: Optional[SettlementOut] = None
    matches: List[MatchOut] = Field(default_factory=list)
