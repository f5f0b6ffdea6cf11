from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from conftest import OTHER_OWNER, OWNER
from bettracker.core.errors import (
    AlreadySettledError,
    BetNotFoundError,
    InvalidStatusError,
    PermissionDeniedError,
)
from bettracker.db.session import Base
from bettracker.models.bet import Bet
from bettracker.services.bet_store import BetStore, validate_stakes
from bettracker.services.settlement import payout_for, settle, settle_bet
from bettracker.services.stake_parser import ParsedParticipant

SPLIT = (("A", "60.00"), ("B", "40.00"))


@pytest.mark.parametrize(
    "status,expected",
    [("won", Decimal("90.00")), ("lost", Decimal("0")), ("push", Decimal("60.00")), ("void", Decimal("60.00"))],
)
def test_payout_for(status, expected):
    assert payout_for(Decimal("60"), Decimal("100"), Decimal("150"), status) == expected


def test_payout_for_rejects_pending():
    with pytest.raises(InvalidStatusError):
        payout_for(Decimal("60"), Decimal("100"), Decimal("150"), "pending")


async def _reload(session_factory, bet_id) -> Bet:
    async with session_factory() as s:
        return await s.get(Bet, bet_id)


@pytest.mark.asyncio
async def test_won_splits_profit_by_stake(session, session_factory, bet_factory):
    bet = await bet_factory(risk="100", to_win="150", participants=SPLIT)

    summary = await settle_bet(session, OWNER, bet.id, "won")

    assert summary.payouts == {"A": Decimal("90.00"), "B": Decimal("60.00")}
    assert summary.total_payout == Decimal("150.00")
    assert summary.winners == [("A", Decimal("30.00")), ("B", Decimal("20.00"))]
    assert summary.losers == []

    stored = await _reload(session_factory, bet.id)
    assert stored.status == "won"
    assert stored.settled_at is not None
    assert sum(p.payout_due for p in stored.participants) == summary.total_payout


@pytest.mark.asyncio
async def test_lost_zeroes_every_payout(session, bet_factory):
    bet = await bet_factory(risk="100", to_win="150", participants=SPLIT)

    summary = await settle_bet(session, OWNER, bet.id, "lost")

    assert summary.total_payout == 0
    assert summary.winners == []
    assert summary.losers == [("A", Decimal("60.00")), ("B", Decimal("40.00"))]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["push", "void"])
async def test_push_and_void_return_stakes(session, bet_factory, status):
    bet = await bet_factory(risk="100", to_win="150", participants=SPLIT)

    summary = await settle_bet(session, OWNER, bet.id, status)

    assert summary.payouts == {"A": Decimal("60.00"), "B": Decimal("40.00")}
    assert summary.total_payout == Decimal("100.00")
    assert summary.winners == [] and summary.losers == []


@pytest.mark.asyncio
async def test_second_settle_is_rejected_and_changes_nothing(session, session_factory, bet_factory):
    bet = await bet_factory(risk="100", to_win="150", participants=SPLIT)
    await settle_bet(session, OWNER, bet.id, "won")
    before = await _reload(session_factory, bet.id)

    async with session_factory() as s2:
        with pytest.raises(AlreadySettledError) as exc:
            await settle_bet(s2, OWNER, bet.id, "lost")
    assert exc.value.current_status == "won"

    after = await _reload(session_factory, bet.id)
    assert after.status == "won"
    assert after.settled_at == before.settled_at
    assert [p.payout_due for p in after.participants] == [p.payout_due for p in before.participants]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["pending", "cashed_out", ""])
async def test_non_terminal_status_is_invalid(session, bet_factory, status):
    bet = await bet_factory()
    with pytest.raises(InvalidStatusError):
        await settle_bet(session, OWNER, bet.id, status)


@pytest.mark.asyncio
async def test_missing_and_foreign_bets(session, bet_factory):
    bet = await bet_factory()
    with pytest.raises(BetNotFoundError):
        await settle_bet(session, OWNER, "nope", "won")
    with pytest.raises(PermissionDeniedError):
        await settle_bet(session, OTHER_OWNER, bet.id, "won")


@pytest.mark.asyncio
async def test_concurrent_settle_loses_the_race(tmp_path):
    # file database so each session has its own connection
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False)

    from bettracker.schemas.bets import ParsedBet

    async with factory() as s:
        bet = await BetStore(s).create(
            OWNER,
            ParsedBet(type="straight", odds="+150", risk=Decimal("100"), to_win=Decimal("150"), status="pending"),
            [ParsedParticipant("A", Decimal("60")), ParsedParticipant("B", Decimal("40"))],
        )
        await s.commit()

    try:
        async with factory() as first, factory() as second:
            stale = await BetStore(second).get(bet.id)
            fresh = await BetStore(first).get(bet.id)

            await settle(BetStore(first), fresh, "won")
            await first.commit()

            assert stale.status == "pending"
            with pytest.raises(AlreadySettledError) as exc:
                await settle(BetStore(second), stale, "lost")
            await second.rollback()
            assert exc.value.current_status == "won"

        async with factory() as s:
            stored = await s.get(Bet, bet.id)
            assert stored.status == "won"
            assert sorted(p.payout_due for p in stored.participants) == [Decimal("60.00"), Decimal("90.00")]
    finally:
        await engine.dispose()


def test_stake_sum_is_checked_on_stored_precision():
    even = [ParsedParticipant(n, Decimal("100") / 6) for n in "ABCDEF"]
    assert validate_stakes(even, Decimal("100")) == []

    cents = [ParsedParticipant(n, Decimal("16.67")) for n in "ABCDEF"]
    assert validate_stakes(cents, Decimal("100")) == [
        "Stakes must sum to bet risk amount ($100.00), got $100.02"
    ]
