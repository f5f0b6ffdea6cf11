from fastapi import APIRouter

from bettracker.schemas.bets import ParsedParticipantOut, ParticipantsParseIn, ParticipantsParseOut
from bettracker.services import stake_parser

router = APIRouter(prefix="/api/participants", tags=["participants"])


@router.post("/parse", response_model=ParticipantsParseOut)
async def parse_participants(payload: ParticipantsParseIn):
    """Preview how participant text splits; errors are returned, not raised."""
    result = stake_parser.parse(payload.text, total_risk=payload.total_risk)
    return ParticipantsParseOut(
        success=result.ok,
        participants=[ParsedParticipantOut(name=p.name, stake=float(p.stake)) for p in result.participants],
        errors=result.errors,
        is_equal_split=result.is_equal_split,
    )
