"""
Final standings order with tiebreakers.

Ranking rules:
    Primary: Points (never overridden)

    Within a point group (teams level on points):
        TB1: Head-to-head points, counting only matches between group members
        TB2: Head-to-head goal difference, same matches
        TB3: Overall season goal difference

    Teams still level after TB3 (typically a circular tie, A>B>C>A) keep
    their input order. TB3 already compares overall goal difference, so the
    final fallback re-sort of a tied run can never reorder it and is not
    repeated. Such runs are reported as unresolved ties; they are
    informational only, the output is always a strict order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from models import Diagnostic, HeadToHeadRecord, MatchResult, PointsPolicy, Standing, TieRun
from standings import goals_from, qualifies, result_for

logger = logging.getLogger(__name__)


@dataclass
class TiebreakOutcome:
    ordered: List[Standing]
    unresolved: List[TieRun] = field(default_factory=list)


def head_to_head(
    team_ids: Iterable[str],
    matches: Iterable[MatchResult],
    policy: PointsPolicy,
) -> Dict[Tuple[str, str], HeadToHeadRecord]:
    """
    Build (team, opponent) records for every ordered pair in the group.

    Only qualifying matches where both sides belong to the group are read.
    """
    group = list(team_ids)
    members = set(group)
    records = {
        (a, b): HeadToHeadRecord()
        for a in group for b in group if a != b
    }

    for match in matches:
        if not qualifies(match):
            continue
        if match.home_team_id not in members or match.away_team_id not in members:
            continue
        if match.home_team_id == match.away_team_id:
            continue
        for team_id, opponent in (
            (match.home_team_id, match.away_team_id),
            (match.away_team_id, match.home_team_id),
        ):
            gf, ga = goals_from(match, team_id)
            pts, w, d, l = result_for(gf, ga, policy)
            rec = records[(team_id, opponent)]
            rec.played += 1
            rec.won += w
            rec.drawn += d
            rec.lost += l
            rec.goals_for += gf
            rec.goals_against += ga
            rec.points += pts

    return records


def get_record_among_tied(
    team_ids: List[str],
    records: Dict[Tuple[str, str], HeadToHeadRecord],
) -> Dict[str, Tuple[int, int]]:
    """Aggregate (h2h points, h2h goal difference) per team across the group."""
    totals = {t: (0, 0) for t in team_ids}
    for (team_id, _), rec in records.items():
        pts, gd = totals[team_id]
        totals[team_id] = (pts + rec.points, gd + rec.goal_difference)
    return totals


def _tiebreak_key(standing: Standing, h2h: Dict[str, Tuple[int, int]]) -> Tuple[int, int, int]:
    h2h_pts, h2h_gd = h2h[standing.team_id]
    return (h2h_pts, h2h_gd, standing.goal_difference)


def sort_tied_group(
    group: List[Standing],
    matches: List[MatchResult],
    policy: PointsPolicy,
) -> Tuple[List[Standing], List[List[Standing]]]:
    """
    Order one point group. Returns (ordered group, runs still fully tied).
    """
    if len(group) <= 1:
        return list(group), []

    team_ids = [s.team_id for s in group]
    h2h = get_record_among_tied(team_ids, head_to_head(team_ids, matches, policy))

    ordered = sorted(group, key=lambda s: _tiebreak_key(s, h2h), reverse=True)
    # sorted(reverse=True) is stable, equal keys keep input order

    result: List[Standing] = []
    runs: List[List[Standing]] = []
    i = 0
    while i < len(ordered):
        key = _tiebreak_key(ordered[i], h2h)
        run = [ordered[i]]
        j = i + 1
        while j < len(ordered) and _tiebreak_key(ordered[j], h2h) == key:
            run.append(ordered[j])
            j += 1
        if len(run) > 1:
            runs.append(run)
        result.extend(run)
        i = j

    return result, runs


def resolve(
    standings: Iterable[Standing],
    matches: Iterable[MatchResult],
    policy: PointsPolicy,
    diagnostics: Optional[List[Diagnostic]] = None,
) -> TiebreakOutcome:
    """
    Order a season's standings, points first, ties broken inside each point
    group. matches should be the season's matches; non-qualifying ones are
    ignored.
    """
    rows = sorted(standings, key=lambda s: s.points, reverse=True)
    match_list = list(matches)

    outcome = TiebreakOutcome(ordered=[])
    i = 0
    while i < len(rows):
        pts = rows[i].points
        group = [rows[i]]
        j = i + 1
        while j < len(rows) and rows[j].points == pts:
            group.append(rows[j])
            j += 1

        ordered, runs = sort_tied_group(group, match_list, policy)
        outcome.ordered.extend(ordered)
        for run in runs:
            tie = TieRun(points=pts, team_ids=[s.team_id for s in run])
            outcome.unresolved.append(tie)
            message = (
                f"Teams {', '.join(tie.team_ids)} on {pts} pts are level on every "
                f"tiebreaker; keeping input order"
            )
            logger.warning(message)
            if diagnostics is not None:
                diagnostics.append(Diagnostic(kind="unresolved_tie", message=message))
        i = j

    return outcome


def order(
    standings: Iterable[Standing],
    matches: Iterable[MatchResult],
    policy: PointsPolicy,
) -> List[Standing]:
    """Final automatic order (ties fully broken)."""
    return resolve(standings, matches, policy).ordered
