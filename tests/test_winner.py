from dataclasses import dataclass

from movienight.services.winner import calculate_winner, rank_candidates


@dataclass
class _Movie:
    runtime_minutes: int | None
    nomination_streak: int = 0


def test_tied_scores_break_by_shorter_runtime():
    nominations = {"u1": ["A"], "u2": ["B"]}
    votes = {
        "u1": {"top_pick": "A", "second_pick": "B"},
        "u2": {"top_pick": "B", "second_pick": "A"},
    }
    movies = {"A": _Movie(90), "B": _Movie(120)}

    ranked = rank_candidates(nominations, votes, movies)
    assert [(c.movie_id, c.score) for c in ranked] == [("A", 5), ("B", 5)]

    winner = calculate_winner(nominations, votes, movies)
    assert winner.movie_id == "A"
    assert winner.score == 5


def test_underdog_boost_adds_one_point_per_slot():
    nominations = {"u1": ["C", "D"]}
    votes = {"u1": {"top_pick": "C"}}
    movies = {"C": _Movie(100, nomination_streak=5), "D": _Movie(100)}

    ranked = {c.movie_id: c for c in rank_candidates(nominations, votes, movies)}
    assert ranked["C"].raw_score == 3
    assert ranked["C"].boost == 1
    assert ranked["C"].score == 4


def test_streak_below_threshold_gets_no_boost():
    nominations = {"u1": ["C"]}
    votes = {"u1": {"top_pick": "C"}, "u2": {"top_pick": "C"}}
    movies = {"C": _Movie(100, nomination_streak=4)}

    (only,) = rank_candidates(nominations, votes, movies)
    assert only.score == 6
    assert only.boost == 0


def test_unanimous_pick_in_every_slot_scores_six_per_voter():
    nominations = {"u1": ["A"]}
    same_everywhere = {"top_pick": "A", "second_pick": "A", "third_pick": "A"}
    votes = {"u1": same_everywhere, "u2": same_everywhere, "u3": same_everywhere}

    (plain,) = rank_candidates(nominations, votes, {"A": _Movie(100)})
    assert plain.score == 18
    assert plain.vote_count == 9

    (boosted,) = rank_candidates(nominations, votes, {"A": _Movie(100, nomination_streak=5)})
    assert boosted.raw_score == 18
    assert boosted.boost == 9
    assert boosted.score == 27


def test_boost_counts_every_slot_naming_the_movie():
    nominations = {"u1": ["C", "D"]}
    votes = {
        "u1": {"top_pick": "C", "second_pick": "D"},
        "u2": {"top_pick": "D", "third_pick": "C"},
    }
    movies = {"C": _Movie(100, nomination_streak=7), "D": _Movie(100)}

    ranked = {c.movie_id: c for c in rank_candidates(nominations, votes, movies)}
    assert ranked["C"].raw_score == 4
    assert ranked["C"].score == 6
    assert ranked["D"].score == 5


def test_no_nominations_means_no_winner():
    assert calculate_winner({}, {}, {}) is None
    assert calculate_winner({"u1": [], "u2": []}, {"u1": {"top_pick": "A"}}, {}) is None


def test_result_does_not_depend_on_vote_order():
    nominations = {"u1": ["A", "B"], "u2": ["C"]}
    votes = {
        "u1": {"top_pick": "A", "second_pick": "C"},
        "u2": {"top_pick": "C", "second_pick": "B", "third_pick": "A"},
        "u3": {"top_pick": "B"},
    }
    movies = {"A": _Movie(95), "B": _Movie(110), "C": _Movie(88)}

    forward = calculate_winner(nominations, votes, movies)
    backward = calculate_winner(
        dict(reversed(list(nominations.items()))),
        dict(reversed(list(votes.items()))),
        movies,
    )
    assert forward == backward


def test_votes_for_non_candidates_and_blank_picks_are_ignored():
    nominations = {"u1": ["A"]}
    votes = {"u1": {"top_pick": "Z", "second_pick": "", "third_pick": "A"}}
    movies = {"A": _Movie(100)}

    (only,) = rank_candidates(nominations, votes, movies)
    assert only.movie_id == "A"
    assert only.score == 1
    assert only.vote_count == 1


def test_unresolvable_candidates_rank_last():
    nominations = {"u1": ["A", "B"]}
    votes = {"u1": {"top_pick": "B", "second_pick": "A"}}
    # B has no runtime, so it can never be scheduled
    movies = {"A": _Movie(100), "B": _Movie(None)}

    ranked = rank_candidates(nominations, votes, movies)
    assert [c.movie_id for c in ranked] == ["A", "B"]
    assert ranked[1].resolvable is False


def test_exact_ties_fall_back_to_movie_id():
    nominations = {"u1": ["b-movie", "a-movie"]}
    votes = {}
    movies = {"a-movie": _Movie(100), "b-movie": _Movie(100)}

    assert calculate_winner(nominations, votes, movies).movie_id == "a-movie"


def test_boosted_tie_uses_runtime_tie_break():
    nominations = {"u1": ["X", "Y"]}
    votes = {
        "u1": {"top_pick": "X", "second_pick": "Y"},
        "u2": {"top_pick": "Y", "second_pick": "X"},
    }
    movies = {
        "X": _Movie(140, nomination_streak=6),
        "Y": _Movie(100, nomination_streak=5),
    }

    ranked = rank_candidates(nominations, votes, movies)
    assert [(c.movie_id, c.score) for c in ranked] == [("Y", 7), ("X", 7)]
