"""Daily cycle phase rules.

Every API worker runs ``evaluate_transition`` on whatever snapshot it just
read; there is no leader. A transition is only ever written with a
compare-and-set on ``current_status`` (see ``cycle_store.apply_transition``),
so two workers that reach the same conclusion from the same snapshot produce
one effective write.
"""
from __future__ import annotations

import logging
from collections.abc import Hashable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta

from movienight.schemas.cycles import DailyCycleOut
from movienight.services.participation import (
    nominator_count,
    total_decisions,
    voter_count,
    yes_count,
)
from movienight.services.schedule import as_utc
from movienight.services.winner import MovieStats, WinnerResult, calculate_winner

logger = logging.getLogger(__name__)

WAITING_FOR_DECISIONS = "WAITING_FOR_DECISIONS"
GATHERING_NOMINATIONS = "GATHERING_NOMINATIONS"
GATHERING_VOTES = "GATHERING_VOTES"
REVEAL = "REVEAL"
DASHBOARD_VIEW = "DASHBOARD_VIEW"

STATUS_ORDER: tuple[str, ...] = (
    WAITING_FOR_DECISIONS,
    GATHERING_NOMINATIONS,
    GATHERING_VOTES,
    REVEAL,
    DASHBOARD_VIEW,
)


@dataclass(frozen=True)
class CycleRules:
    min_yes_decisions: int = 2
    min_total_decisions: int = 3
    underdog_threshold: int = 5
    reveal_dwell_seconds: int = 10


@dataclass(frozen=True)
class Transition:
    source: str
    target: str
    winner: WinnerResult | None = None
    dashboard_due_at: datetime | None = None
    # winner fields are written with the status
    sets_winner: bool = False


def status_rank(status: str) -> int:
    return STATUS_ORDER.index(status)


def is_forward(source: str, target: str) -> bool:
    return status_rank(target) > status_rank(source)


def reveal_transition(
    snapshot: DailyCycleOut,
    *,
    rules: CycleRules,
    movies: Mapping[Hashable, MovieStats],
    now: datetime,
) -> Transition:
    winner = calculate_winner(
        snapshot.nominations,
        {uid: v.model_dump() for uid, v in snapshot.votes.items()},
        movies,
        underdog_threshold=rules.underdog_threshold,
    )
    return Transition(
        source=snapshot.current_status,
        target=REVEAL,
        winner=winner,
        sets_winner=True,
        dashboard_due_at=as_utc(now) + timedelta(seconds=rules.reveal_dwell_seconds),
    )


def evaluate_transition(
    snapshot: DailyCycleOut,
    *,
    rules: CycleRules,
    movies: Mapping[Hashable, MovieStats],
    now: datetime,
) -> Transition | None:
    """Return the automatic transition due for ``snapshot``, if any."""
    status = snapshot.current_status
    yes = yes_count(snapshot.decisions)

    if status == WAITING_FOR_DECISIONS:
        total = total_decisions(snapshot.decisions)
        if total < rules.min_total_decisions:
            return None
        if yes < rules.min_yes_decisions:
            # quorum without interest: stay put, a reset is the only way out
            logger.info(
                "Cycle %s has quorum but not enough interest yes=%s total=%s",
                snapshot.id,
                yes,
                total,
            )
            return None
        return Transition(source=status, target=GATHERING_NOMINATIONS)

    if status == GATHERING_NOMINATIONS:
        if yes > 0 and nominator_count(snapshot.nominations) >= yes:
            return Transition(source=status, target=GATHERING_VOTES)
        return None

    if status == GATHERING_VOTES:
        if yes > 0 and voter_count(snapshot.votes) >= yes:
            return reveal_transition(snapshot, rules=rules, movies=movies, now=now)
        return None

    if status == REVEAL:
        due_at = snapshot.dashboard_due_at
        if due_at is None or as_utc(now) >= as_utc(due_at):
            return Transition(source=status, target=DASHBOARD_VIEW)
        return None

    return None
