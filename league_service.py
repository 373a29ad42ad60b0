"""
League operations exposed to the HTTP layer.

Reads and writes go through the store; the ranking and bracket logic lives
in standings, tiebreak, manual_ranking and playoffs as plain functions.
"""
from __future__ import annotations

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import manual_ranking
import playoffs
import standings as calculator
import tiebreak
from errors import (
    AmbiguousPlayoffWinner,
    BracketNotInitialized,
    ConcurrentUpdateError,
    InvalidSlotAssignment,
    NotFoundError,
    PlayoffMatchNotReady,
)
from models import AUTOMATIC, Diagnostic, Manual, PlayoffMatch, Round, SlotUpdate, Standing, TieRun
from repository import LeagueStore

logger = logging.getLogger(__name__)

ADVANCE_MAX_RETRIES = 3


def new_id() -> str:
    return str(uuid.uuid4())[:8]


@dataclass
class StandingsReport:
    season: str
    rows: List[Standing]
    unresolved_ties: List[TieRun] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "season": self.season,
            "standings": [
                {"rank": i, **s.to_dict()} for i, s in enumerate(self.rows, 1)
            ],
            "tie_warning": [t.team_ids for t in self.unresolved_ties] or None,
            "diagnostics": [dataclasses.asdict(d) for d in self.diagnostics],
        }


class LeagueService:
    def __init__(self, store: LeagueStore, max_retries: int = ADVANCE_MAX_RETRIES):
        self.store = store
        self.max_retries = max_retries

    def _season(self, season: Optional[str]) -> str:
        return season or self.store.current_season()

    # ============ STANDINGS ============

    def recompute(
        self,
        team_id: str,
        season: Optional[str] = None,
        diagnostics: Optional[List[Diagnostic]] = None,
    ) -> Standing:
        """Rebuild and store one team's Standing, keeping its ranking mode."""
        season = self._season(season)
        name = self.store.team_name(team_id)
        if name is None:
            raise NotFoundError("Team", team_id)

        standing = calculator.recompute(
            team_id,
            season,
            self.store.matches_for_team(team_id, season),
            self.store.points_policy(),
            team_name=name,
            known_teams=self.store.list_teams(),
            diagnostics=diagnostics,
        )
        return self.store.save_standing(standing, keep_ranking=True)

    def recompute_all(
        self,
        season: Optional[str] = None,
        mapper: Callable = map,
        diagnostics: Optional[List[Diagnostic]] = None,
    ) -> List[Standing]:
        season = self._season(season)
        teams = self.store.list_teams()
        logger.info(f"Recalculating standings for {len(teams)} teams in {season}")

        rows = calculator.recompute_all(
            season,
            self.store.matches_for_season(season),
            self.store.points_policy(),
            team_ids=list(teams),
            team_names=teams,
            known_teams=teams,
            diagnostics=diagnostics,
            mapper=mapper,
        )
        return [self.store.save_standing(s, keep_ranking=True) for s in rows]

    def update_standings_for_match(self, match_id: str, season: Optional[str] = None) -> List[Standing]:
        """Recompute both sides of a match after it was written."""
        match = self.store.get_match(match_id)
        if match is None:
            raise NotFoundError("Match", match_id)
        return self.recompute_teams([match.home_team_id, match.away_team_id], season or match.season)

    def recompute_teams(self, team_ids: List[str], season: str) -> List[Standing]:
        updated = []
        for team_id in dict.fromkeys(team_ids):
            if self.store.team_name(team_id) is None:
                logger.warning(f"Skipping standings update for unknown team {team_id}")
                continue
            updated.append(self.recompute(team_id, season))
        return updated

    def standings_report(self, season: Optional[str] = None) -> StandingsReport:
        """Final display order: tiebreakers first, then manual ranks on top."""
        season = self._season(season)
        diagnostics: List[Diagnostic] = []
        outcome = tiebreak.resolve(
            self.store.standings_for_season(season),
            self.store.matches_for_season(season),
            self.store.points_policy(),
            diagnostics=diagnostics,
        )
        rows = manual_ranking.apply_manual_ranks(outcome.ordered, diagnostics=diagnostics)
        return StandingsReport(
            season=season,
            rows=rows,
            unresolved_ties=outcome.unresolved,
            diagnostics=diagnostics,
        )

    def order(self, season: Optional[str] = None) -> List[Standing]:
        return self.standings_report(season).rows

    def set_manual_rank(
        self,
        team_id: str,
        enabled: bool,
        rank: Optional[int] = None,
        season: Optional[str] = None,
    ) -> Standing:
        season = self._season(season)
        standing = self.store.get_standing(team_id, season)
        if standing is None:
            raise NotFoundError("Standing", f"{team_id}/{season}")
        if enabled:
            if rank is None:
                raise ValueError("A manual rank is required when manual ranking is enabled")
            if rank < 1:
                raise ValueError(f"Manual rank must be 1 or higher, got {rank}")
            standing.ranking = Manual(rank)
        else:
            standing.ranking = AUTOMATIC
        self.store.save_standing(standing)
        logger.info(
            f"Updated manual ranking for team {team_id}: "
            f"manually_ranked={standing.manually_ranked}, manual_rank={standing.manual_rank}"
        )
        return standing

    # ============ PLAYOFFS ============

    def initialize_bracket(self, season: Optional[str] = None) -> List[PlayoffMatch]:
        """Create the empty bracket once per season."""
        season = self._season(season)
        existing = self.store.playoff_matches(season)
        if existing:
            logger.info(f"Playoff bracket for {season} already exists ({len(existing)} matches)")
            return existing
        for shell in playoffs.bracket_shells(season, new_id):
            self.store.add_playoff_match(shell)
        logger.info(f"Initialized playoff bracket for {season}")
        return self.store.playoff_matches(season)

    def bracket(self, season: Optional[str] = None) -> List[PlayoffMatch]:
        return self.store.playoff_matches(self._season(season))

    def _playoff_match(self, playoff_match_id: str) -> PlayoffMatch:
        match = self.store.get_playoff_match(playoff_match_id)
        if match is None:
            raise NotFoundError("Playoff match", playoff_match_id)
        return match

    def set_entry_teams(self, playoff_match_id: str, home_team_id: str, away_team_id: str) -> PlayoffMatch:
        """Seed a quarterfinal. Later rounds are filled only by advance()."""
        match = self._playoff_match(playoff_match_id)
        if match.round is not playoffs.ENTRY_ROUND:
            raise InvalidSlotAssignment(
                f"Teams for {match.round.value} matches are set by advancing the previous round"
            )
        if home_team_id == away_team_id:
            raise InvalidSlotAssignment("Home and away team must be different teams")
        home_name = self.store.team_name(home_team_id)
        away_name = self.store.team_name(away_team_id)
        if home_name is None:
            raise NotFoundError("Team", home_team_id)
        if away_name is None:
            raise NotFoundError("Team", away_team_id)

        seeded = dataclasses.replace(
            match,
            home_team_id=home_team_id,
            home_team_name=home_name,
            away_team_id=away_team_id,
            away_team_name=away_name,
        )
        return self.store.save_playoff_match(seeded, expected_version=match.version)

    def record_playoff_result(
        self,
        playoff_match_id: str,
        home_score: Optional[int],
        away_score: Optional[int],
        home_penalties: Optional[int] = None,
        away_penalties: Optional[int] = None,
        completed: bool = True,
        date: Optional[str] = None,
        location: Optional[str] = None,
    ) -> PlayoffMatch:
        """Write score fields only, then advance the winner if completed."""
        last_error: Optional[ConcurrentUpdateError] = None
        for _ in range(self.max_retries):
            match = self._playoff_match(playoff_match_id)
            scored = dataclasses.replace(
                match,
                home_score=home_score,
                away_score=away_score,
                home_penalties=home_penalties,
                away_penalties=away_penalties,
                is_completed=completed,
                date=match.date if date is None else date,
                location=match.location if location is None else location,
            )
            if completed:
                # nothing is written for a result that cannot advance
                playoffs.determine_winner(scored)
            try:
                saved = self.store.save_playoff_match(scored, expected_version=match.version)
                break
            except ConcurrentUpdateError as e:
                last_error = e
                logger.warning(f"Retrying result write: {e}")
        else:
            raise last_error

        if saved.is_completed:
            self.advance(saved.id)
        return saved

    def advance(self, playoff_match_id: str) -> Optional[SlotUpdate]:
        """
        Propagate a completed match's winner into its next-round slot.

        Returns None for the final. Re-running with an unchanged result
        writes nothing; a corrected result overwrites the slot it fed.
        """
        source = self._playoff_match(playoff_match_id)
        target = playoffs.next_slot(source.round, source.match_number)
        if target is None:
            try:
                winner = playoffs.determine_winner(source)
            except AmbiguousPlayoffWinner as e:
                logger.error(str(e))
                raise
            logger.info(f"Final {source.id} decided, champion: {source.team_in(winner)}")
            return None

        target_round, target_number, _ = target
        last_error: Optional[ConcurrentUpdateError] = None
        for attempt in range(1, self.max_retries + 1):
            next_match = self.store.find_playoff_match(source.season, target_round, target_number)
            if next_match is None:
                raise BracketNotInitialized(
                    f"No {target_round.value} match {target_number} for season {source.season}"
                )
            try:
                update = playoffs.slot_update_for(source, next_match)
            except AmbiguousPlayoffWinner as e:
                logger.error(str(e))
                raise
            if not update.changed:
                return update

            try:
                self.store.save_playoff_match(
                    playoffs.apply_slot_update(next_match, update),
                    expected_version=next_match.version,
                )
            except ConcurrentUpdateError as e:
                last_error = e
                logger.warning(f"Advance attempt {attempt} for {source.id} conflicted: {e}")
                continue

            logger.info(
                f"{source.round.value} {source.match_number} winner {update.team_name} -> "
                f"{target_round.value} {target_number} ({update.slot.value})"
            )
            return update

        raise last_error

    def champion(self, season: Optional[str] = None) -> Optional[str]:
        final = self.store.find_playoff_match(self._season(season), Round.FINAL, 1)
        if final is None or not final.is_completed:
            return None
        try:
            winner = playoffs.determine_winner(final)
        except (AmbiguousPlayoffWinner, PlayoffMatchNotReady) as e:
            logger.warning(f"Final has no champion yet: {e}")
            return None
        return final.team_in(winner)
