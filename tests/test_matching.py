from datetime import timedelta
from decimal import Decimal

import pytest

from conftest import OTHER_OWNER, OWNER, make_parsed
from bettracker.core.timeutil import now_naive
from bettracker.models.bet import Bet, BetLeg
from bettracker.services.bet_store import BetStore
from bettracker.services.matching import (
    STRATEGY_FUZZY,
    STRATEGY_TICKET,
    MatchScorer,
    score_candidate,
)


def record(**kw) -> Bet:
    legs = kw.pop("legs", 0)
    data = dict(
        sportsbook="DraftKings", type="straight", odds="-110",
        risk=Decimal("100.00"), to_win=Decimal("90.91"),
    )
    data.update(kw)
    return Bet(legs=[BetLeg(position=i) for i in range(legs)], **data)


# ---- pure scoring ----

def test_all_fields_exact_scores_100():
    assert score_candidate(make_parsed(), record()) == 100


def test_risk_close_scores_15_instead_of_25():
    assert score_candidate(make_parsed(), record(risk=Decimal("100.50"))) == 90


def test_amount_tiers():
    parsed = make_parsed()
    assert score_candidate(parsed, record(to_win=Decimal("91.50"))) == 95
    assert score_candidate(parsed, record(risk=Decimal("101.00"))) == 75
    assert score_candidate(parsed, record(risk=Decimal("150"), to_win=Decimal("200"))) == 60


def test_sportsbook_is_case_insensitive_and_needs_both_sides():
    assert score_candidate(make_parsed(sportsbook="draftkings"), record()) == 100
    assert score_candidate(make_parsed(sportsbook=None), record()) == 80
    assert score_candidate(make_parsed(), record(sportsbook=None)) == 80


def test_parlay_leg_bonus_is_capped_at_100():
    parsed = make_parsed(type="parlay", odds="+264", legs=3)
    assert score_candidate(parsed, record(type="parlay", odds="+264", legs=3)) == 100


def test_parlay_leg_bonus():
    parsed = make_parsed(type="parlay", odds="+264", sportsbook=None, legs=3)
    assert score_candidate(parsed, record(type="parlay", odds="+264", legs=3)) == 90
    assert score_candidate(parsed, record(type="parlay", odds="+264", legs=2)) == 80


# ---- find_matches against the store ----

@pytest.mark.asyncio
async def test_exact_risk_candidate_ranks_above_close_one(session, bet_factory):
    close = await bet_factory(ticket_number="A", risk="100.50")
    exact = await bet_factory(ticket_number="B", age_days=1)

    matches = await MatchScorer(BetStore(session)).find_matches(make_parsed(ticket_number="Z"), OWNER)

    assert [(m.bet_id, m.confidence) for m in matches] == [(exact.id, 100), (close.id, 90)]
    assert all(m.strategy == STRATEGY_FUZZY for m in matches)


@pytest.mark.asyncio
async def test_ticket_match_skips_fuzzy_entirely(session, bet_factory):
    by_ticket = await bet_factory(ticket_number="T-1", sportsbook="FanDuel", odds="+400", risk="5", to_win="20")
    await bet_factory(ticket_number="T-2")  # perfect fuzzy candidate

    matches = await MatchScorer(BetStore(session)).find_matches(make_parsed(ticket_number="T-1"), OWNER)

    assert len(matches) == 1
    assert matches[0].bet_id == by_ticket.id
    assert matches[0].confidence == 100
    assert matches[0].strategy == STRATEGY_TICKET


@pytest.mark.asyncio
async def test_explicit_ticket_overrides_parsed_one(session, bet_factory):
    wanted = await bet_factory(ticket_number="EXPLICIT")
    await bet_factory(ticket_number="PARSED")

    matches = await MatchScorer(BetStore(session)).find_matches(
        make_parsed(ticket_number="PARSED"), OWNER, ticket_number="EXPLICIT"
    )
    assert [m.bet_id for m in matches] == [wanted.id]


@pytest.mark.asyncio
async def test_only_owners_pending_bets_are_candidates(session, bet_factory):
    await bet_factory(ticket_number="T-1", owner_id=OTHER_OWNER)
    await bet_factory(ticket_number="T-1", status="won")
    await bet_factory(ticket_number="X", owner_id=OTHER_OWNER)

    matches = await MatchScorer(BetStore(session)).find_matches(make_parsed(ticket_number="T-1"), OWNER)
    assert matches == []


@pytest.mark.asyncio
async def test_fuzzy_window(session, bet_factory):
    recent = await bet_factory(ticket_number="A", age_days=29)
    await bet_factory(ticket_number="B", age_days=31)

    matches = await MatchScorer(BetStore(session)).find_matches(make_parsed(ticket_number=""), OWNER)
    assert [m.bet_id for m in matches] == [recent.id]


@pytest.mark.asyncio
async def test_below_threshold_is_dropped(session, bet_factory):
    # type + odds + to_win = 55
    await bet_factory(ticket_number="A", sportsbook="FanDuel", risk="500")
    matches = await MatchScorer(BetStore(session)).find_matches(make_parsed(ticket_number=""), OWNER)
    assert matches == []


@pytest.mark.asyncio
async def test_ties_prefer_most_recent(session, bet_factory):
    older = await bet_factory(ticket_number="A", age_days=3)
    newer = await bet_factory(ticket_number="B", age_days=1)

    matches = await MatchScorer(BetStore(session)).find_matches(make_parsed(ticket_number=""), OWNER)
    assert [m.bet_id for m in matches] == [newer.id, older.id]


@pytest.mark.asyncio
async def test_results_are_cut_to_five(session, bet_factory):
    made = [await bet_factory(ticket_number="DUP", age_days=i) for i in range(7)]

    matches = await MatchScorer(BetStore(session)).find_matches(make_parsed(ticket_number="DUP"), OWNER)
    assert [m.bet_id for m in matches] == [b.id for b in made[:5]]


@pytest.mark.asyncio
async def test_explicit_now_moves_the_window(session, bet_factory):
    b = await bet_factory(ticket_number="A", age_days=10)
    scorer = MatchScorer(BetStore(session))

    later = now_naive() + timedelta(days=25)
    assert await scorer.find_matches(make_parsed(ticket_number=""), OWNER, now=later) == []
    assert [m.bet_id for m in await scorer.find_matches(make_parsed(ticket_number=""), OWNER)] == [b.id]
