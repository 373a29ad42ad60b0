"""Merge administrator-fixed ranks into the automatic standings order."""
from __future__ import annotations

import logging
from collections import deque
from typing import Dict, List, Optional

from models import Diagnostic, Standing

logger = logging.getLogger(__name__)


def _note(diagnostics: Optional[List[Diagnostic]], standing: Standing, message: str) -> None:
    logger.warning(message)
    if diagnostics is not None:
        diagnostics.append(Diagnostic(
            kind="invalid_manual_rank", message=message, team_id=standing.team_id,
        ))


def apply_manual_ranks(
    auto_ordered: List[Standing],
    diagnostics: Optional[List[Diagnostic]] = None,
) -> List[Standing]:
    """
    Place manually ranked teams at their declared rank and fill the other
    positions with the remaining teams in their automatic order.

    A rank outside [1, N] or one already claimed by an earlier team cannot
    be honoured; that team loses its fixed position and fills a free slot
    after the automatically ranked teams. No team is ever dropped.
    """
    total = len(auto_ordered)
    manual = [s for s in auto_ordered if s.manually_ranked]
    if not manual:
        return list(auto_ordered)

    auto = deque(s for s in auto_ordered if not s.manually_ranked)
    manual.sort(key=lambda s: s.manual_rank)

    claims: Dict[int, Standing] = {}
    unplaced: deque = deque()
    for standing in manual:
        rank = standing.manual_rank
        if rank < 1 or rank > total:
            _note(diagnostics, standing,
                  f"Manual rank {rank} for {standing.team_id} is outside 1..{total}")
            unplaced.append(standing)
        elif rank in claims:
            _note(diagnostics, standing,
                  f"Manual rank {rank} for {standing.team_id} already taken by "
                  f"{claims[rank].team_id}")
            unplaced.append(standing)
        else:
            claims[rank] = standing

    final: List[Standing] = []
    for position in range(1, total + 1):
        if position in claims:
            final.append(claims[position])
        elif auto:
            final.append(auto.popleft())
        elif unplaced:
            final.append(unplaced.popleft())

    # only reachable if the claims above were inconsistent
    final.extend(auto)
    final.extend(unplaced)
    return final
