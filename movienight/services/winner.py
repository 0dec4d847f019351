"""Ranked-choice tally for the nightly vote.

Pure functions only: no database, no clock. The cycle state machine calls
``calculate_winner`` while moving into REVEAL and the API exposes it directly.
"""
from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

PICK_POINTS: tuple[tuple[str, int], ...] = (
    ("top_pick", 3),
    ("second_pick", 2),
    ("third_pick", 1),
)
DEFAULT_UNDERDOG_THRESHOLD = 5


class MovieStats(Protocol):
    runtime_minutes: int | None
    nomination_streak: int


@dataclass(frozen=True)
class WinnerResult:
    movie_id: Hashable
    score: int


@dataclass(frozen=True)
class CandidateScore:
    movie_id: Hashable
    score: int
    raw_score: int
    boost: int
    vote_count: int
    runtime_minutes: int | None
    resolvable: bool


def _pick(vote: Any, slot: str) -> Any:
    if isinstance(vote, Mapping):
        return vote.get(slot)
    return getattr(vote, slot, None)


def _candidate_ids(nominations: Mapping[Any, Iterable[Hashable]]) -> list[Hashable]:
    seen: set[Hashable] = set()
    out: list[Hashable] = []
    for movie_ids in nominations.values():
        for movie_id in movie_ids or ():
            if movie_id in seen:
                continue
            seen.add(movie_id)
            out.append(movie_id)
    return out


def _runtime_of(movie: MovieStats | None) -> int | None:
    if movie is None:
        return None
    runtime = getattr(movie, "runtime_minutes", None)
    if isinstance(runtime, int) and runtime > 0:
        return runtime
    return None


def rank_candidates(
    nominations: Mapping[Any, Iterable[Hashable]],
    votes: Mapping[Any, Any],
    movies: Mapping[Hashable, MovieStats],
    *,
    underdog_threshold: int = DEFAULT_UNDERDOG_THRESHOLD,
) -> list[CandidateScore]:
    """Score every nominated movie and return them best first.

    Points are 3/2/1 for top/second/third pick. A candidate whose
    ``nomination_streak`` is at least ``underdog_threshold`` earns one extra
    point for every slot (any voter, any rank) that names it.

    Ordering: resolvable candidates (present in ``movies`` with a positive
    runtime) before unresolvable ones; then score descending; then runtime
    ascending (resolvable only); then ``str(movie_id)`` ascending, so the
    result never depends on dict ordering.
    """
    candidates = _candidate_ids(nominations)
    raw = {movie_id: 0 for movie_id in candidates}
    vote_counts = {movie_id: 0 for movie_id in candidates}

    for vote in votes.values():
        for slot, points in PICK_POINTS:
            movie_id = _pick(vote, slot)
            # "" / None picks contribute nothing; non-candidates are ignored
            if not movie_id or movie_id not in raw:
                continue
            raw[movie_id] += points
            vote_counts[movie_id] += 1

    ranked: list[CandidateScore] = []
    for movie_id in candidates:
        movie = movies.get(movie_id)
        streak = getattr(movie, "nomination_streak", 0) if movie is not None else 0
        boost = vote_counts[movie_id] if (streak or 0) >= underdog_threshold else 0
        runtime = _runtime_of(movie)
        ranked.append(
            CandidateScore(
                movie_id=movie_id,
                score=raw[movie_id] + boost,
                raw_score=raw[movie_id],
                boost=boost,
                vote_count=vote_counts[movie_id],
                runtime_minutes=runtime,
                resolvable=runtime is not None,
            )
        )

    ranked.sort(
        key=lambda c: (
            not c.resolvable,
            -c.score,
            c.runtime_minutes if c.runtime_minutes is not None else 0,
            str(c.movie_id),
        )
    )
    return ranked


def calculate_winner(
    nominations: Mapping[Any, Iterable[Hashable]],
    votes: Mapping[Any, Any],
    movies: Mapping[Hashable, MovieStats],
    *,
    underdog_threshold: int = DEFAULT_UNDERDOG_THRESHOLD,
) -> WinnerResult | None:
    ranked = rank_candidates(nominations, votes, movies, underdog_threshold=underdog_threshold)
    if not ranked:
        return None
    top = ranked[0]
    return WinnerResult(movie_id=top.movie_id, score=top.score)
