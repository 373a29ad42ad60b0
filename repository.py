"""
Storage seams for the league core.

The computation modules never query storage themselves; LeagueService reads
and writes through these interfaces. InMemoryLeagueStore implements all of
them with plain dicts guarded by a lock.
"""
from __future__ import annotations

import dataclasses
import threading
from typing import Dict, List, Optional, Protocol, Tuple

from errors import ConcurrentUpdateError, NotFoundError
from models import MatchResult, PlayoffMatch, PointsPolicy, ROUND_ORDER, Round, Standing


class TeamDirectory(Protocol):
    def team_name(self, team_id: str) -> Optional[str]: ...
    def list_teams(self) -> Dict[str, str]: ...


class MatchRepository(Protocol):
    def get_match(self, match_id: str) -> Optional[MatchResult]: ...
    def matches_for_season(self, season: str) -> List[MatchResult]: ...
    def matches_for_team(self, team_id: str, season: str) -> List[MatchResult]: ...


class StandingsRepository(Protocol):
    def get_standing(self, team_id: str, season: str) -> Optional[Standing]: ...
    def save_standing(self, standing: Standing, keep_ranking: bool = False) -> Standing: ...
    def standings_for_season(self, season: str) -> List[Standing]: ...


class PlayoffRepository(Protocol):
    def get_playoff_match(self, match_id: str) -> Optional[PlayoffMatch]: ...
    def find_playoff_match(self, season: str, round_: Round, match_number: int) -> Optional[PlayoffMatch]: ...
    def playoff_matches(self, season: str, round_: Optional[Round] = None) -> List[PlayoffMatch]: ...
    def add_playoff_match(self, match: PlayoffMatch) -> None: ...
    def save_playoff_match(self, match: PlayoffMatch, expected_version: int) -> PlayoffMatch: ...


class SettingsStore(Protocol):
    def points_policy(self) -> PointsPolicy: ...
    def current_season(self) -> str: ...


class LeagueStore(TeamDirectory, MatchRepository, StandingsRepository,
                  PlayoffRepository, SettingsStore, Protocol):
    """Everything LeagueService needs from storage."""


class InMemoryLeagueStore:
    def __init__(self, policy: PointsPolicy, season: str):
        self._lock = threading.RLock()
        self._policy = policy
        self._season = season
        self._teams: Dict[str, str] = {}
        self._matches: Dict[str, MatchResult] = {}
        self._standings: Dict[Tuple[str, str], Standing] = {}
        self._playoffs: Dict[str, PlayoffMatch] = {}

    # ---- settings ----

    def points_policy(self) -> PointsPolicy:
        return self._policy

    def set_points_policy(self, policy: PointsPolicy) -> None:
        self._policy = policy

    def current_season(self) -> str:
        return self._season

    def set_current_season(self, season: str) -> None:
        self._season = season

    # ---- teams ----

    def add_team(self, team_id: str, name: str) -> None:
        with self._lock:
            self._teams[team_id] = name

    def remove_team(self, team_id: str) -> None:
        with self._lock:
            if team_id not in self._teams:
                raise NotFoundError("Team", team_id)
            del self._teams[team_id]
            for key in [k for k in self._standings if k[0] == team_id]:
                del self._standings[key]

    def team_name(self, team_id: str) -> Optional[str]:
        return self._teams.get(team_id)

    def list_teams(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._teams)

    # ---- matches ----

    def add_match(self, match: MatchResult) -> None:
        with self._lock:
            self._matches[match.id] = match

    def update_match(self, match: MatchResult) -> None:
        with self._lock:
            if match.id not in self._matches:
                raise NotFoundError("Match", match.id)
            self._matches[match.id] = match

    def delete_match(self, match_id: str) -> MatchResult:
        with self._lock:
            if match_id not in self._matches:
                raise NotFoundError("Match", match_id)
            return self._matches.pop(match_id)

    def get_match(self, match_id: str) -> Optional[MatchResult]:
        return self._matches.get(match_id)

    def matches_for_season(self, season: str) -> List[MatchResult]:
        with self._lock:
            return [m for m in self._matches.values() if m.season == season]

    def matches_for_team(self, team_id: str, season: str) -> List[MatchResult]:
        with self._lock:
            return [
                m for m in self._matches.values()
                if m.season == season and m.involves(team_id)
            ]

    # ---- standings ----

    def get_standing(self, team_id: str, season: str) -> Optional[Standing]:
        with self._lock:
            standing = self._standings.get((team_id, season))
            return dataclasses.replace(standing) if standing else None

    def save_standing(self, standing: Standing, keep_ranking: bool = False) -> Standing:
        """
        Full replace. With keep_ranking the stored ranking mode wins over the
        one on standing, read and written under the same lock.
        """
        key = (standing.team_id, standing.season)
        with self._lock:
            stored = self._standings.get(key)
            if keep_ranking and stored is not None:
                standing = dataclasses.replace(standing, ranking=stored.ranking)
            self._standings[key] = dataclasses.replace(standing)
            return dataclasses.replace(standing)

    def standings_for_season(self, season: str) -> List[Standing]:
        with self._lock:
            return [
                dataclasses.replace(s)
                for (_, s_season), s in self._standings.items()
                if s_season == season
            ]

    # ---- playoffs ----

    def get_playoff_match(self, match_id: str) -> Optional[PlayoffMatch]:
        with self._lock:
            match = self._playoffs.get(match_id)
            return dataclasses.replace(match) if match else None

    def find_playoff_match(self, season: str, round_: Round, match_number: int) -> Optional[PlayoffMatch]:
        with self._lock:
            for match in self._playoffs.values():
                if match.season == season and match.round is round_ and match.match_number == match_number:
                    return dataclasses.replace(match)
            return None

    def playoff_matches(self, season: str, round_: Optional[Round] = None) -> List[PlayoffMatch]:
        with self._lock:
            matches = [
                dataclasses.replace(m) for m in self._playoffs.values()
                if m.season == season and (round_ is None or m.round is round_)
            ]
        matches.sort(key=lambda m: (ROUND_ORDER[m.round], m.match_number))
        return matches

    def add_playoff_match(self, match: PlayoffMatch) -> None:
        with self._lock:
            self._playoffs[match.id] = dataclasses.replace(match)

    def save_playoff_match(self, match: PlayoffMatch, expected_version: int) -> PlayoffMatch:
        """Compare-and-set write; bumps the stored version."""
        with self._lock:
            stored = self._playoffs.get(match.id)
            if stored is None:
                raise NotFoundError("Playoff match", match.id)
            if stored.version != expected_version:
                raise ConcurrentUpdateError(match.id, expected_version, stored.version)
            saved = dataclasses.replace(match, version=stored.version + 1)
            self._playoffs[match.id] = saved
            return dataclasses.replace(saved)
