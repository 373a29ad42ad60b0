"""Exceptions raised by the standings and playoff core."""
from __future__ import annotations

from typing import Optional


class LeagueError(Exception):
    """Base class for errors the caller has to act on."""


class NotFoundError(LeagueError):
    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} '{key}' not found")


class AmbiguousPlayoffWinner(LeagueError):
    """Raised when a completed playoff match has no resolvable winner."""

    def __init__(self, match_id: str, home_score: Optional[int], away_score: Optional[int]):
        self.match_id = match_id
        self.home_score = home_score
        self.away_score = away_score
        super().__init__(
            f"Playoff match {match_id} has no winner "
            f"({home_score}-{away_score}, no deciding penalty shootout recorded)"
        )


class PlayoffMatchNotReady(LeagueError):
    """The source match is not completed or still has an empty slot."""


class BracketNotInitialized(LeagueError):
    """The next-round shell the winner should be written into does not exist."""


class InvalidSlotAssignment(LeagueError):
    """Team slots outside the entry round are only written by advancement."""


class ConcurrentUpdateError(LeagueError):
    def __init__(self, match_id: str, expected_version: int, actual_version: int):
        self.match_id = match_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Playoff match {match_id} changed underneath the update "
            f"(expected version {expected_version}, found {actual_version})"
        )
