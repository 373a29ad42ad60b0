"""
Domain records for league standings and the playoff bracket.

Scores are explicit optionals: None means "not recorded", which is not the
same thing as a 0. A team's ranking mode is either Automatic or Manual(rank).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

TBD = "TBD"


@dataclass(frozen=True)
class PointsPolicy:
    points_for_win: int
    points_for_draw: int
    points_for_loss: int


@dataclass(frozen=True)
class MatchResult:
    id: str
    home_team_id: str
    away_team_id: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    is_completed: bool = False
    date: str = ""
    season: str = ""
    location: str = ""

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)


@dataclass(frozen=True)
class Automatic:
    pass


@dataclass(frozen=True)
class Manual:
    rank: int


RankingMode = Union[Automatic, Manual]
AUTOMATIC = Automatic()


@dataclass
class Standing:
    team_id: str
    team_name: str
    season: str
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0
    ranking: RankingMode = AUTOMATIC

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    @property
    def manually_ranked(self) -> bool:
        return isinstance(self.ranking, Manual)

    @property
    def manual_rank(self) -> Optional[int]:
        return self.ranking.rank if isinstance(self.ranking, Manual) else None

    def to_dict(self) -> dict:
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "season": self.season,
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "goal_difference": self.goal_difference,
            "points": self.points,
            "manually_ranked": self.manually_ranked,
            "manual_rank": self.manual_rank,
        }


@dataclass
class HeadToHeadRecord:
    """Results of one team against one opponent inside a point group."""
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


class Round(str, Enum):
    QUARTERFINAL = "quarterfinal"
    SEMIFINAL = "semifinal"
    FINAL = "final"


ROUND_ORDER = {Round.QUARTERFINAL: 1, Round.SEMIFINAL: 2, Round.FINAL: 3}


class Slot(str, Enum):
    HOME = "home"
    AWAY = "away"


@dataclass
class PlayoffMatch:
    id: str
    round: Round
    match_number: int
    season: str = ""
    home_team_id: Optional[str] = None
    away_team_id: Optional[str] = None
    home_team_name: str = TBD
    away_team_name: str = TBD
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    home_penalties: Optional[int] = None
    away_penalties: Optional[int] = None
    is_completed: bool = False
    date: str = ""
    location: str = ""
    version: int = 0

    @property
    def is_tied(self) -> bool:
        return (
            self.home_score is not None
            and self.away_score is not None
            and self.home_score == self.away_score
        )

    def team_in(self, slot: Slot) -> Optional[str]:
        return self.home_team_id if slot is Slot.HOME else self.away_team_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "round": self.round.value,
            "match_number": self.match_number,
            "season": self.season,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "home_team_name": self.home_team_name,
            "away_team_name": self.away_team_name,
            "home_score": self.home_score,
            "away_score": self.away_score,
            "home_penalties": self.home_penalties,
            "away_penalties": self.away_penalties,
            "is_completed": self.is_completed,
            "date": self.date,
            "location": self.location,
        }


@dataclass(frozen=True)
class SlotUpdate:
    source_match_id: str
    target_round: Round
    target_match_number: int
    slot: Slot
    team_id: str
    team_name: str
    changed: bool = True


@dataclass(frozen=True)
class Diagnostic:
    kind: str  # "incomplete_data", "missing_team_reference", "invalid_manual_rank", "unresolved_tie"
    message: str
    team_id: Optional[str] = None
    match_id: Optional[str] = None


@dataclass
class TieRun:
    """Teams left level on every criterion; their order is the input order."""
    points: int
    team_ids: List[str] = field(default_factory=list)
