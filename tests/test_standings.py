"""Standings aggregation: per-team totals, skipped matches, idempotent recompute."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from models import MatchResult, PointsPolicy
from standings import qualifies, recompute, recompute_all, result_for, season_team_ids

SEASON = "Winter 2025"
POLICY = PointsPolicy(3, 1, 0)


def played(match_id, home, away, hs, as_, season=SEASON):
    return MatchResult(
        id=match_id, home_team_id=home, away_team_id=away,
        home_score=hs, away_score=as_, is_completed=True, season=season,
    )


@pytest.fixture
def scenario_a():
    return [
        played("m1", "A", "B", 3, 1),
        played("m2", "A", "C", 2, 0),
        played("m3", "B", "C", 1, 0),
    ]


# ---------------------------------------------------------------------------
# Single-team recompute
# ---------------------------------------------------------------------------

class TestRecompute:
    """Totals from home and away sides."""

    def test_scenario_a_totals(self, scenario_a):
        a = recompute("A", SEASON, scenario_a, POLICY, team_name="Team A")
        b = recompute("B", SEASON, scenario_a, POLICY)
        c = recompute("C", SEASON, scenario_a, POLICY)

        assert (a.played, a.won, a.drawn, a.lost) == (2, 2, 0, 0)
        assert (a.goals_for, a.goals_against, a.points) == (5, 1, 6)
        assert a.team_name == "Team A"

        assert (b.played, b.won, b.drawn, b.lost) == (2, 1, 0, 1)
        assert (b.goals_for, b.goals_against, b.points) == (2, 3, 3)

        assert (c.played, c.won, c.drawn, c.lost) == (2, 0, 0, 2)
        assert (c.goals_for, c.goals_against, c.points) == (0, 3, 0)

    def test_away_side_uses_away_score(self):
        matches = [played("m1", "X", "Y", 0, 4)]
        y = recompute("Y", SEASON, matches, POLICY)
        assert (y.goals_for, y.goals_against, y.won) == (4, 0, 1)

    def test_draw_awards_draw_points(self):
        matches = [played("m1", "X", "Y", 2, 2)]
        x = recompute("X", SEASON, matches, POLICY)
        assert (x.drawn, x.points) == (1, 1)

    def test_custom_policy(self):
        policy = PointsPolicy(2, 1, 1)
        matches = [played("m1", "X", "Y", 1, 0), played("m2", "Y", "X", 3, 0)]
        x = recompute("X", SEASON, matches, policy)
        assert x.points == 2 + 1

    def test_unknown_name_fallback(self):
        assert recompute("X", SEASON, [], POLICY).team_name == "Unknown Team"

    def test_other_seasons_ignored(self):
        matches = [played("m1", "X", "Y", 1, 0), played("m2", "X", "Y", 5, 0, season="Fall 2024")]
        x = recompute("X", SEASON, matches, POLICY)
        assert (x.played, x.goals_for) == (1, 1)

    def test_idempotent(self, scenario_a):
        first = recompute("B", SEASON, scenario_a, POLICY)
        second = recompute("B", SEASON, scenario_a, POLICY)
        assert first == second

    def test_goal_difference_is_derived(self, scenario_a):
        a = recompute("A", SEASON, scenario_a, POLICY)
        assert a.goal_difference == 4
        a.goals_against += 2
        assert a.goal_difference == 2


# ---------------------------------------------------------------------------
# Matches that do not contribute
# ---------------------------------------------------------------------------

class TestSkippedMatches:
    """Incomplete or stale data is skipped, reported, never raised."""

    def test_scheduled_match_is_silent(self):
        scheduled = MatchResult(id="m1", home_team_id="X", away_team_id="Y", season=SEASON)
        diagnostics = []
        x = recompute("X", SEASON, [scheduled], POLICY, diagnostics=diagnostics)
        assert x.played == 0
        assert diagnostics == []

    def test_completed_without_score_is_reported(self, caplog):
        broken = MatchResult(
            id="m9", home_team_id="X", away_team_id="Y",
            home_score=2, away_score=None, is_completed=True, season=SEASON,
        )
        diagnostics = []
        x = recompute("X", SEASON, [broken], POLICY, diagnostics=diagnostics)
        assert x.played == 0
        assert [d.kind for d in diagnostics] == ["incomplete_data"]
        assert diagnostics[0].match_id == "m9"
        assert "m9" in caplog.text

    def test_zero_is_a_valid_score(self):
        match = played("m1", "X", "Y", 0, 0)
        assert qualifies(match)
        assert recompute("X", SEASON, [match], POLICY).drawn == 1

    def test_negative_score_does_not_count(self):
        assert not qualifies(played("m1", "X", "Y", -1, 0))

    def test_missing_team_reference(self):
        matches = [played("m1", "X", "GONE", 3, 0), played("m2", "X", "Y", 1, 1)]
        diagnostics = []
        x = recompute("X", SEASON, matches, POLICY, known_teams={"X", "Y"}, diagnostics=diagnostics)
        assert (x.played, x.drawn, x.won) == (1, 1, 0)
        assert diagnostics[0].kind == "missing_team_reference"


# ---------------------------------------------------------------------------
# Whole season
# ---------------------------------------------------------------------------

class TestRecomputeAll:
    """One Standing per team in the season; conservation holds for all."""

    def test_teams_in_first_seen_order(self, scenario_a):
        assert season_team_ids(SEASON, scenario_a) == ["A", "B", "C"]

    def test_conservation(self, scenario_a):
        policy = PointsPolicy(3, 1, 0)
        for s in recompute_all(SEASON, scenario_a + [played("m4", "B", "A", 2, 2)], policy):
            assert s.played == s.won + s.drawn + s.lost
            assert s.points == (
                s.won * policy.points_for_win
                + s.drawn * policy.points_for_draw
                + s.lost * policy.points_for_loss
            )

    def test_known_teams_filter(self, scenario_a):
        rows = recompute_all(SEASON, scenario_a, POLICY, known_teams=["A", "B"])
        assert [s.team_id for s in rows] == ["A", "B"]
        # A's win over C no longer counts
        assert rows[0].points == 3

    def test_parallel_mapper_matches_sequential(self, scenario_a):
        sequential = recompute_all(SEASON, scenario_a, POLICY)
        with ThreadPoolExecutor(max_workers=3) as executor:
            parallel = recompute_all(SEASON, scenario_a, POLICY, mapper=executor.map)
        assert parallel == sequential

    def test_result_for(self):
        assert result_for(2, 1, POLICY) == (3, 1, 0, 0)
        assert result_for(1, 1, POLICY) == (1, 0, 1, 0)
        assert result_for(0, 1, POLICY) == (0, 0, 0, 1)
