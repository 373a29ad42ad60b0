"""Manual rank overlay on top of the automatic order."""

import pytest

from manual_ranking import apply_manual_ranks
from models import AUTOMATIC, Manual, Standing


def team(team_id, rank=None):
    return Standing(
        team_id=team_id, team_name=team_id, season="S",
        ranking=Manual(rank) if rank is not None else AUTOMATIC,
    )


def ids(rows):
    return [s.team_id for s in rows]


class TestManualRanks:

    def test_no_manual_ranks_passthrough(self):
        rows = [team("A"), team("B"), team("C")]
        assert apply_manual_ranks(rows) == rows

    def test_scenario_d(self):
        rows = [team("A"), team("B"), team("C", rank=1), team("D")]
        assert ids(apply_manual_ranks(rows)) == ["C", "A", "B", "D"]

    def test_last_place(self):
        rows = [team("A", rank=4), team("B"), team("C"), team("D")]
        assert ids(apply_manual_ranks(rows)) == ["B", "C", "D", "A"]

    @pytest.mark.parametrize("k", [1, 2, 3, 4, 5])
    def test_fixpoint(self, k):
        rows = [team("A"), team("B"), team("C"), team("X", rank=k), team("E")]
        result = apply_manual_ranks(rows)
        assert result[k - 1].team_id == "X"
        assert ids([s for s in result if s.team_id != "X"]) == ["A", "B", "C", "E"]

    def test_two_manual_teams(self):
        rows = [team("A"), team("B", rank=3), team("C"), team("D", rank=1)]
        assert ids(apply_manual_ranks(rows)) == ["D", "A", "B", "C"]


class TestInvalidManualRanks:
    """Bad ranks degrade deterministically and never drop a team."""

    def test_duplicate_rank_first_wins(self):
        rows = [team("A"), team("B", rank=1), team("C", rank=1), team("D")]
        diagnostics = []
        result = apply_manual_ranks(rows, diagnostics=diagnostics)
        assert ids(result) == ["B", "A", "D", "C"]
        assert [d.team_id for d in diagnostics] == ["C"]
        assert diagnostics[0].kind == "invalid_manual_rank"

    def test_out_of_range_rank(self):
        rows = [team("A", rank=9), team("B"), team("C")]
        diagnostics = []
        result = apply_manual_ranks(rows, diagnostics=diagnostics)
        assert ids(result) == ["B", "C", "A"]
        assert len(diagnostics) == 1

    def test_claims_kept_when_autos_run_out(self):
        rows = [team("A", rank=1), team("B", rank=1), team("C", rank=3)]
        result = apply_manual_ranks(rows)
        assert ids(result) == ["A", "B", "C"]

    def test_length_preserved(self):
        rows = [team("A", rank=0), team("B", rank=2), team("C", rank=2), team("D", rank=7)]
        result = apply_manual_ranks(rows)
        assert sorted(ids(result)) == ["A", "B", "C", "D"]
        assert result[1].team_id == "B"
