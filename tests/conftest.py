"""Shared fixtures: in-memory database, bet factory, tokens and an API client."""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["TZ"] = "UTC"
os.environ["EXTRACTOR_URL"] = ""

import time
from datetime import timedelta
from decimal import Decimal
from typing import Sequence, Tuple

import httpx
import jwt
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from bettracker.core.timeutil import now_naive
from bettracker.db.session import Base, get_session
from bettracker.models.bet import Bet, BetLeg, BetParticipant, STATUS_PENDING
from bettracker.schemas.bets import BetLegData, ParsedBet

OWNER = "user-1"
OTHER_OWNER = "user-2"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def bet_factory(session_factory):
    """Insert a bet directly, bypassing validation, and return it."""

    async def _make(
        ticket_number: str = "T-1",
        owner_id: str = OWNER,
        sportsbook: str | None = "DraftKings",
        type: str = "straight",
        odds: str = "-110",
        risk: str = "100.00",
        to_win: str = "90.91",
        status: str = STATUS_PENDING,
        participants: Sequence[Tuple[str, str]] = (("Sam", "100.00"),),
        legs: int = 0,
        age_days: float = 0,
    ) -> Bet:
        bet = Bet(
            owner_id=owner_id,
            ticket_number=ticket_number,
            sportsbook=sportsbook,
            type=type,
            odds=odds,
            risk=Decimal(risk),
            to_win=Decimal(to_win),
            status=status,
            created_at=now_naive() - timedelta(days=age_days),
            legs=[
                BetLeg(position=i, event=f"Game {i}", market="moneyline", selection=f"Team {i}", odds="-110")
                for i in range(legs)
            ],
            participants=[
                BetParticipant(participant_name=n, stake=Decimal(s), payout_due=Decimal("0"))
                for n, s in participants
            ],
        )
        async with session_factory() as s:
            s.add(bet)
            await s.commit()
        return bet

    return _make


def make_parsed(**overrides) -> ParsedBet:
    data = dict(
        ticket_number="T-1",
        sportsbook="DraftKings",
        type="straight",
        odds="-110",
        risk=Decimal("100.00"),
        to_win=Decimal("90.91"),
        status="won",
        legs=[],
    )
    data.update(overrides)
    if isinstance(data["legs"], int):
        data["legs"] = [BetLegData(event=f"Game {i}") for i in range(data["legs"])]
    return ParsedBet(**data)


def make_token(sub: str = OWNER, expires_in: int = 3600) -> str:
    now = int(time.time())
    return jwt.encode({"sub": sub, "iat": now, "exp": now + expires_in}, "test-secret", algorithm="HS256")


def auth(sub: str = OWNER) -> dict:
    return {"Authorization": f"Bearer {make_token(sub)}"}


@pytest_asyncio.fixture
async def app(session_factory):
    from bettracker.main import app as api

    async def _session():
        async with session_factory() as s:
            yield s

    api.dependency_overrides[get_session] = _session
    yield api
    api.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c
