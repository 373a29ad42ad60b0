"""
Single-elimination playoff bracket: 4 quarterfinals -> 2 semifinals -> final.

Bracket Structure:
    QF1 winner -> SF1 home      QF2 winner -> SF1 away
    QF3 winner -> SF2 home      QF4 winner -> SF2 away
    SF1 winner -> Final home    SF2 winner -> Final away

A level score is decided by the penalty shootout fields. A completed match
that is level with no deciding shootout has no winner and cannot advance.
"""
from __future__ import annotations

import dataclasses
from typing import Callable, Dict, List, Optional, Tuple

from errors import AmbiguousPlayoffWinner, InvalidSlotAssignment, PlayoffMatchNotReady
from models import TBD, PlayoffMatch, Round, Slot, SlotUpdate

ENTRY_ROUND = Round.QUARTERFINAL

# round -> number of matches
BRACKET_LAYOUT: Tuple[Tuple[Round, int], ...] = (
    (Round.QUARTERFINAL, 4),
    (Round.SEMIFINAL, 2),
    (Round.FINAL, 1),
)

# (round, match number) -> (next round, next match number, slot)
SLOT_TABLE: Dict[Tuple[Round, int], Tuple[Round, int, Slot]] = {
    (Round.QUARTERFINAL, 1): (Round.SEMIFINAL, 1, Slot.HOME),
    (Round.QUARTERFINAL, 2): (Round.SEMIFINAL, 1, Slot.AWAY),
    (Round.QUARTERFINAL, 3): (Round.SEMIFINAL, 2, Slot.HOME),
    (Round.QUARTERFINAL, 4): (Round.SEMIFINAL, 2, Slot.AWAY),
    (Round.SEMIFINAL, 1): (Round.FINAL, 1, Slot.HOME),
    (Round.SEMIFINAL, 2): (Round.FINAL, 1, Slot.AWAY),
}


def next_slot(round_: Round, match_number: int) -> Optional[Tuple[Round, int, Slot]]:
    """Where the winner goes; None for the final."""
    if round_ is Round.FINAL:
        return None
    target = SLOT_TABLE.get((round_, match_number))
    if target is None:
        raise InvalidSlotAssignment(
            f"No bracket position for {round_.value} match {match_number}"
        )
    return target


def determine_winner(match: PlayoffMatch) -> Slot:
    """Which side won a completed playoff match."""
    if not match.is_completed:
        raise PlayoffMatchNotReady(f"Playoff match {match.id} is not completed")
    if not match.home_team_id or not match.away_team_id:
        raise PlayoffMatchNotReady(f"Playoff match {match.id} still has an empty slot")
    if match.home_score is None or match.away_score is None:
        raise AmbiguousPlayoffWinner(match.id, match.home_score, match.away_score)

    if match.home_score != match.away_score:
        return Slot.HOME if match.home_score > match.away_score else Slot.AWAY

    hp, ap = match.home_penalties, match.away_penalties
    if hp is None or ap is None or hp == ap:
        raise AmbiguousPlayoffWinner(match.id, match.home_score, match.away_score)
    return Slot.HOME if hp > ap else Slot.AWAY


def slot_update_for(completed: PlayoffMatch, next_match: PlayoffMatch) -> SlotUpdate:
    """
    The write that propagates completed's winner into next_match.

    changed is False when the slot already holds that winner, so re-running
    advancement for the same result is a no-op.
    """
    target = next_slot(completed.round, completed.match_number)
    if target is None:
        raise InvalidSlotAssignment("The final has no next round")
    target_round, target_number, slot = target
    if next_match.round is not target_round or next_match.match_number != target_number:
        raise InvalidSlotAssignment(
            f"{completed.round.value} {completed.match_number} feeds "
            f"{target_round.value} {target_number}, not "
            f"{next_match.round.value} {next_match.match_number}"
        )

    winner = determine_winner(completed)
    if winner is Slot.HOME:
        team_id, team_name = completed.home_team_id, completed.home_team_name
    else:
        team_id, team_name = completed.away_team_id, completed.away_team_name

    if slot is Slot.HOME:
        current = (next_match.home_team_id, next_match.home_team_name)
    else:
        current = (next_match.away_team_id, next_match.away_team_name)

    return SlotUpdate(
        source_match_id=completed.id,
        target_round=target_round,
        target_match_number=target_number,
        slot=slot,
        team_id=team_id,
        team_name=team_name,
        changed=current != (team_id, team_name),
    )


def apply_slot_update(next_match: PlayoffMatch, update: SlotUpdate) -> PlayoffMatch:
    """Copy of next_match with only the targeted slot rewritten."""
    if update.slot is Slot.HOME:
        return dataclasses.replace(
            next_match, home_team_id=update.team_id, home_team_name=update.team_name,
        )
    return dataclasses.replace(
        next_match, away_team_id=update.team_id, away_team_name=update.team_name,
    )


def bracket_shells(season: str, new_id: Callable[[], str]) -> List[PlayoffMatch]:
    """The 7 empty matches of a fresh bracket."""
    shells = []
    for round_, count in BRACKET_LAYOUT:
        for number in range(1, count + 1):
            shells.append(PlayoffMatch(
                id=new_id(),
                round=round_,
                match_number=number,
                season=season,
                home_team_name=TBD,
                away_team_name=TBD,
            ))
    return shells
