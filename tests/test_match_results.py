"""
Unit tests for recording reported match results.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.elimination import build_bracket, propagate_auto_advances, record_match_result, apply_match_result
from core.errors import NotFoundError, IllegalTransitionError
from core.serialization import serialize_bracket

DONE = "2026-03-01T12:00:00"


def _ready_bracket(players):
    bracket = build_bracket(players)
    propagate_auto_advances(bracket)
    return bracket


class TestRecordMatchResult:
    """Tests for a single reported result."""

    def test_scenario_first_semifinal(self, make_players):
        """P1 beats P2: result stored and P1 waits alone in the final."""
        p1, p2, p3, p4 = make_players(4)
        bracket = _ready_bracket([p1, p2, p3, p4])

        returned = record_match_result(bracket, "r1m1", p1.id, completed_at=DONE)

        assert returned is bracket
        r1m1 = bracket.find_match("r1m1")
        assert r1m1.winner == p1
        assert r1m1.loser == p2
        assert r1m1.completed_at == DONE
        assert r1m1.auto_advance is False
        final = bracket.final_match
        assert final.player1 == p1
        assert final.player2 is None
        assert final.winner is None
        assert final.auto_advance is False

    def test_completed_at_defaults_to_now(self, make_players):
        """Without an explicit time the current time is recorded."""
        bracket = _ready_bracket(make_players(2))
        record_match_result(bracket, "r1m1", 2)
        assert bracket.final_match.completed_at

    def test_winner_id_matches_as_string(self, make_players):
        """Form values arrive as strings."""
        p1, p2 = make_players(2)
        bracket = _ready_bracket([p1, p2])
        record_match_result(bracket, "r1m1", "2", completed_at=DONE)
        assert bracket.champion == p2
        assert bracket.final_match.loser == p1

    def test_play_through_to_champion(self, make_players):
        """Results flow round by round until there is a champion."""
        p1, p2, p3 = make_players(3)
        bracket = _ready_bracket([p1, p2, p3])
        record_match_result(bracket, "r1m1", p2.id, completed_at=DONE)
        final = bracket.final_match
        assert (final.player1, final.player2) == (p2, p3)
        record_match_result(bracket, final.id, p3.id, completed_at=DONE)
        assert bracket.champion == p3

    def test_result_cascades_through_empty_branch(self, make_players):
        """A winner whose next opponent can never arrive is auto-advanced again."""
        players = make_players(6)
        bracket = _ready_bracket(players)
        assert bracket.find_match("r2m2").winner is None

        record_match_result(bracket, "r1m3", players[4].id, completed_at=DONE)

        r2m2 = bracket.find_match("r2m2")
        assert r2m2.winner == players[4]
        assert r2m2.auto_advance is True
        assert r2m2.completed_at is None
        assert bracket.final_match.player2 == players[4]
        assert bracket.final_match.winner is None

    def test_apply_returns_cascaded_auto_advances(self, make_players):
        """Callers learn which later matches the result auto-advanced."""
        players = make_players(6)
        bracket = _ready_bracket(players)
        advanced = apply_match_result(bracket, "r1m3", players[4].id, completed_at=DONE)
        assert [m.id for m in advanced] == ["r2m2"]
        assert advanced[0].winner == players[4]

    def test_apply_returns_nothing_without_cascade(self, make_players):
        """A plain result auto-advances nothing."""
        bracket = _ready_bracket(make_players(4))
        assert apply_match_result(bracket, "r1m1", 1, completed_at=DONE) == []

    @pytest.mark.parametrize("n", list(range(2, 18)))
    def test_full_tournament_takes_n_minus_one_results(self, n, make_players):
        """Every player but the champion loses exactly one reported match."""
        players = make_players(n)
        bracket = _ready_bracket(players)
        reported = 0
        while bracket.champion is None:
            playable = [m for m in bracket.matches() if m.player1 and m.player2 and m.winner is None]
            assert playable, "bracket stalled before a champion was decided"
            match = playable[0]
            record_match_result(bracket, match.id, match.player2.id, completed_at=DONE)
            reported += 1
        assert reported == n - 1
        losers = [m.loser for m in bracket.matches() if m.loser is not None]
        assert len(losers) == len(set(p.id for p in losers)) == n - 1


class TestRecordMatchResultRejections:
    """Tests for results the bracket must refuse."""

    def test_unknown_match(self, make_players):
        """An id not in the bracket is not found."""
        bracket = _ready_bracket(make_players(4))
        with pytest.raises(NotFoundError, match="not found"):
            record_match_result(bracket, "r9m1", 1)

    def test_auto_advanced_match(self, make_players):
        """Byes can't be overridden by a human."""
        p1, p2, p3 = make_players(3)
        bracket = _ready_bracket([p1, p2, p3])
        with pytest.raises(IllegalTransitionError, match="Auto-advanced"):
            record_match_result(bracket, "r1m2", p3.id)

    def test_auto_advanced_checked_before_winner(self, make_players):
        """The auto-advance check comes before the winner check."""
        bracket = _ready_bracket(make_players(3))
        with pytest.raises(IllegalTransitionError, match="Auto-advanced"):
            record_match_result(bracket, "r1m2", 99)

    def test_unfilled_match(self, make_players):
        """The final can't be decided while it waits for a player."""
        p1, p2, p3 = make_players(3)
        bracket = _ready_bracket([p1, p2, p3])
        with pytest.raises(IllegalTransitionError, match="Both players"):
            record_match_result(bracket, "r2m1", p3.id)

    def test_already_decided(self, make_players):
        """Reporting the same match twice is rejected."""
        p1, p2, p3, p4 = make_players(4)
        bracket = _ready_bracket([p1, p2, p3, p4])
        record_match_result(bracket, "r1m1", p1.id, completed_at=DONE)
        with pytest.raises(IllegalTransitionError, match="already been recorded"):
            record_match_result(bracket, "r1m1", p1.id)
        with pytest.raises(IllegalTransitionError, match="already been recorded"):
            record_match_result(bracket, "r1m1", p2.id)
        assert bracket.find_match("r1m1").winner == p1

    def test_foreign_winner_leaves_bracket_unchanged(self, make_players):
        """A winner from outside the match is refused without side effects."""
        p1, p2, p3, p4 = make_players(4)
        bracket = _ready_bracket([p1, p2, p3, p4])
        before = serialize_bracket(bracket)
        with pytest.raises(IllegalTransitionError, match="one of the match participants"):
            record_match_result(bracket, "r1m1", p3.id)
        assert serialize_bracket(bracket) == before

    @pytest.mark.parametrize("match_id,winner_id", [
        ("r9m9", 1),
        ("r1m2", 3),
        ("r2m1", 3),
        ("r1m1", 42),
    ])
    def test_rejections_do_not_mutate(self, match_id, winner_id, make_players):
        """No rejected report changes the bracket."""
        bracket = _ready_bracket(make_players(3))
        before = serialize_bracket(bracket)
        with pytest.raises((NotFoundError, IllegalTransitionError)):
            record_match_result(bracket, match_id, winner_id)
        assert serialize_bracket(bracket) == before
