"""
Standings aggregation.

A Standing is a projection of the match set: it is always rebuilt from
scratch for one (team, season), never patched in place. Only completed
matches with both scores recorded contribute.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from models import Diagnostic, MatchResult, PointsPolicy, Standing

logger = logging.getLogger(__name__)

UNKNOWN_TEAM = "Unknown Team"


def _valid_score(score: Optional[int]) -> bool:
    return isinstance(score, int) and not isinstance(score, bool) and score >= 0


def qualifies(match: MatchResult) -> bool:
    """True when the match counts towards standings."""
    return (
        match.is_completed
        and _valid_score(match.home_score)
        and _valid_score(match.away_score)
    )


def result_for(gf: int, ga: int, policy: PointsPolicy) -> Tuple[int, int, int, int]:
    """Returns (pts, w, d, l) for a team that scored gf and conceded ga."""
    if gf > ga:
        return (policy.points_for_win, 1, 0, 0)
    if gf == ga:
        return (policy.points_for_draw, 0, 1, 0)
    return (policy.points_for_loss, 0, 0, 1)


def goals_from(match: MatchResult, team_id: str) -> Tuple[int, int]:
    """(scored, conceded) from team_id's side of a qualifying match."""
    if match.home_team_id == team_id:
        return match.home_score, match.away_score
    return match.away_score, match.home_score


def _note(diagnostics: Optional[List[Diagnostic]], diagnostic: Diagnostic) -> None:
    logger.warning(diagnostic.message)
    if diagnostics is not None:
        diagnostics.append(diagnostic)


def recompute(
    team_id: str,
    season: str,
    matches: Iterable[MatchResult],
    policy: PointsPolicy,
    team_name: Optional[str] = None,
    known_teams: Optional[Iterable[str]] = None,
    diagnostics: Optional[List[Diagnostic]] = None,
) -> Standing:
    """
    Rebuild the Standing for one team in one season.

    Matches of other seasons or not involving the team are ignored. A match
    marked completed without both scores is skipped and reported as
    incomplete data. When known_teams is given, a match against an opponent
    outside that set is skipped and reported as a missing team reference.
    """
    known = set(known_teams) if known_teams is not None else None
    standing = Standing(team_id=team_id, team_name=team_name or UNKNOWN_TEAM, season=season)

    for match in matches:
        if match.season != season or not match.involves(team_id):
            continue
        if not match.is_completed:
            continue
        if not qualifies(match):
            _note(diagnostics, Diagnostic(
                kind="incomplete_data",
                message=f"Match {match.id} is completed but has no valid score "
                        f"({match.home_score}-{match.away_score}); skipped for {team_id}",
                team_id=team_id,
                match_id=match.id,
            ))
            continue

        opponent = match.away_team_id if match.home_team_id == team_id else match.home_team_id
        if known is not None and opponent not in known:
            _note(diagnostics, Diagnostic(
                kind="missing_team_reference",
                message=f"Match {match.id} references unknown team {opponent}; skipped for {team_id}",
                team_id=team_id,
                match_id=match.id,
            ))
            continue

        gf, ga = goals_from(match, team_id)
        pts, w, d, l = result_for(gf, ga, policy)
        standing.played += 1
        standing.goals_for += gf
        standing.goals_against += ga
        standing.points += pts
        standing.won += w
        standing.drawn += d
        standing.lost += l

    logger.info(
        f"Recomputed {standing.team_name} ({team_id}) for {season}: "
        f"P{standing.played} W{standing.won} D{standing.drawn} L{standing.lost} "
        f"GF{standing.goals_for} GA{standing.goals_against} Pts{standing.points}"
    )
    return standing


def season_team_ids(season: str, matches: Iterable[MatchResult]) -> List[str]:
    """Distinct team ids appearing in a season's matches, in first-seen order."""
    seen: Dict[str, None] = {}
    for match in matches:
        if match.season != season:
            continue
        seen.setdefault(match.home_team_id, None)
        seen.setdefault(match.away_team_id, None)
    return list(seen)


def recompute_all(
    season: str,
    matches: Iterable[MatchResult],
    policy: PointsPolicy,
    team_ids: Optional[Iterable[str]] = None,
    team_names: Optional[Dict[str, str]] = None,
    known_teams: Optional[Iterable[str]] = None,
    diagnostics: Optional[List[Diagnostic]] = None,
    mapper: Callable = map,
) -> List[Standing]:
    """
    Recompute every team of a season.

    Teams are independent of each other, so mapper may be any map-like
    callable, e.g. ThreadPoolExecutor.map, to spread the work.
    """
    season_matches = [m for m in matches if m.season == season]
    known = list(known_teams) if known_teams is not None else None
    if team_ids is None:
        team_ids = season_team_ids(season, season_matches)
        if known is not None:
            team_ids = [t for t in team_ids if t in known]
    names = team_names or {}

    def _one(team_id: str) -> Standing:
        return recompute(
            team_id, season, season_matches, policy,
            team_name=names.get(team_id),
            known_teams=known,
            diagnostics=diagnostics,
        )

    return list(mapper(_one, list(team_ids)))
