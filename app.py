"""
League Standings & Playoffs API

Standings are recomputed from recorded match results and ordered with the
league tiebreaker rules automatically. Administrators can pin teams to a
fixed position; every other team keeps its computed order around them.

TIEBREAKER RULES (applied to teams level on points):
    TB1: Head-to-head points among the tied teams
    TB2: Head-to-head goal difference among the tied teams
    TB3: Overall goal difference
    Teams still level keep their input order and are listed in tie_warning.

PLAYOFFS:
    QF1/QF2 winners meet in SF1, QF3/QF4 winners in SF2 (odd QF is home).
    SF1 winner is home in the Final, SF2 winner away.
    Level scores are decided by the penalty shootout.
"""
from __future__ import annotations
import dataclasses
import logging
import os
import re
import uuid
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field, field_validator, model_validator

from errors import (
    AmbiguousPlayoffWinner,
    BracketNotInitialized,
    ConcurrentUpdateError,
    InvalidSlotAssignment,
    LeagueError,
    NotFoundError,
    PlayoffMatchNotReady,
)
from league_service import LeagueService
from models import MatchResult, PointsPolicy
from repository import InMemoryLeagueStore

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

DEFAULT_SEASON = os.environ.get("LEAGUE_SEASON", "Winter 2025")
POINTS_FOR_WIN = int(os.environ.get("POINTS_FOR_WIN", "3"))
POINTS_FOR_DRAW = int(os.environ.get("POINTS_FOR_DRAW", "1"))
POINTS_FOR_LOSS = int(os.environ.get("POINTS_FOR_LOSS", "0"))


def build_service() -> LeagueService:
    store = InMemoryLeagueStore(
        PointsPolicy(POINTS_FOR_WIN, POINTS_FOR_DRAW, POINTS_FOR_LOSS),
        DEFAULT_SEASON,
    )
    return LeagueService(store)


# In-memory league storage
service = build_service()


class SettingsInput(BaseModel):
    current_season: str = Field(..., min_length=1, max_length=50)
    points_for_win: int = Field(..., ge=0, le=10)
    points_for_draw: int = Field(..., ge=0, le=10)
    points_for_loss: int = Field(..., ge=0, le=10)


class TeamInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Team name")
    team_id: Optional[str] = Field(default=None, max_length=50)


class MatchInput(BaseModel):
    home_team_id: str = Field(..., min_length=1, max_length=50, description="Home team id")
    away_team_id: str = Field(..., min_length=1, max_length=50, description="Away team id")
    home_score: Optional[int] = Field(default=None, ge=0, le=100, description="Goals scored by the home team")
    away_score: Optional[int] = Field(default=None, ge=0, le=100, description="Goals scored by the away team")
    is_completed: bool = False
    date: str = Field(default="", max_length=40)
    location: str = Field(default="", max_length=100)
    season: Optional[str] = Field(default=None, max_length=50, description="Defaults to the current season")

    @field_validator('away_team_id')
    @classmethod
    def teams_must_be_different(cls, v, info):
        if 'home_team_id' in info.data and v.strip() == info.data['home_team_id'].strip():
            raise ValueError('home_team_id and away_team_id must be different teams')
        return v


class ManualRankInput(BaseModel):
    enabled: bool
    rank: Optional[int] = Field(default=None, ge=1, le=500)
    season: Optional[str] = Field(default=None, max_length=50)

    @model_validator(mode='after')
    def rank_required_when_enabled(self):
        if self.enabled and self.rank is None:
            raise ValueError('rank is required when manual ranking is enabled')
        return self


class PlayoffTeamsInput(BaseModel):
    home_team_id: str = Field(..., min_length=1, max_length=50)
    away_team_id: str = Field(..., min_length=1, max_length=50)


class PlayoffResultInput(BaseModel):
    home_score: int = Field(..., ge=0, le=100)
    away_score: int = Field(..., ge=0, le=100)
    home_penalties: Optional[int] = Field(default=None, ge=0, le=50)
    away_penalties: Optional[int] = Field(default=None, ge=0, le=50)
    is_completed: bool = True
    date: Optional[str] = Field(default=None, max_length=40)
    location: Optional[str] = Field(default=None, max_length=100)


app = FastAPI()


def norm(s: str) -> str:
    return re.sub(r"\s+", " ", (s or "").strip())


def slug(name: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", norm(name).lower()).strip("-")
    return base or str(uuid.uuid4())[:8]


def http_error(e: LeagueError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (AmbiguousPlayoffWinner, PlayoffMatchNotReady, ConcurrentUpdateError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (InvalidSlotAssignment, BracketNotInitialized)):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ============ SETTINGS ============

@app.get("/api/settings")
def get_settings():
    policy = service.store.points_policy()
    return {
        "ok": True,
        "current_season": service.store.current_season(),
        "points_for_win": policy.points_for_win,
        "points_for_draw": policy.points_for_draw,
        "points_for_loss": policy.points_for_loss,
    }


@app.put("/api/settings")
def update_settings(settings: SettingsInput):
    """Change season or points; standings are recomputed for the new settings."""
    service.store.set_points_policy(PointsPolicy(
        settings.points_for_win, settings.points_for_draw, settings.points_for_loss,
    ))
    service.store.set_current_season(norm(settings.current_season))
    service.recompute_all()
    return get_settings()


# ============ TEAMS ============

@app.post("/api/teams")
def add_team(team: TeamInput):
    name = norm(team.name)
    team_id = norm(team.team_id) if team.team_id else slug(name)
    service.store.add_team(team_id, name)
    logger.info(f"Added team {name} ({team_id})")
    return {"ok": True, "team_id": team_id, "name": name}


@app.get("/api/teams")
def list_teams():
    teams = service.store.list_teams()
    return {
        "ok": True,
        "count": len(teams),
        "teams": [{"team_id": k, "name": v} for k, v in teams.items()],
    }


@app.delete("/api/teams/{team_id}")
def delete_team(team_id: str):
    """Remove a team. Its recorded matches stay and are skipped in standings."""
    try:
        service.store.remove_team(team_id)
    except LeagueError as e:
        raise http_error(e)
    service.recompute_all()
    return {"ok": True, "deleted": team_id}


# ============ MATCHES ============

def _match_from(match_id: str, game: MatchInput) -> MatchResult:
    for team_id in (game.home_team_id, game.away_team_id):
        if service.store.team_name(team_id) is None:
            raise HTTPException(status_code=404, detail=f"Team '{team_id}' not found")
    return MatchResult(
        id=match_id,
        home_team_id=game.home_team_id,
        away_team_id=game.away_team_id,
        home_score=game.home_score,
        away_score=game.away_score,
        is_completed=game.is_completed,
        date=game.date,
        location=norm(game.location),
        season=norm(game.season) if game.season else service.store.current_season(),
    )


def _match_dict(match: MatchResult) -> dict:
    return {
        "id": match.id,
        "home_team_id": match.home_team_id,
        "away_team_id": match.away_team_id,
        "home_score": match.home_score,
        "away_score": match.away_score,
        "is_completed": match.is_completed,
        "date": match.date,
        "location": match.location,
        "season": match.season,
    }


@app.post("/api/matches")
def add_match(game: MatchInput):
    """Record a match and recompute both teams."""
    match = _match_from(str(uuid.uuid4())[:8], game)
    service.store.add_match(match)
    service.update_standings_for_match(match.id)
    return {"ok": True, "match_id": match.id, "match": _match_dict(match)}


@app.get("/api/matches")
def list_matches(season: Optional[str] = Query(None, description="Season (default: current)")):
    matches = service.store.matches_for_season(season or service.store.current_season())
    return {
        "ok": True,
        "count": len(matches),
        "matches": [_match_dict(m) for m in matches],
    }


@app.put("/api/matches/{match_id}")
def update_match(match_id: str, game: MatchInput):
    previous = service.store.get_match(match_id)
    if previous is None:
        raise HTTPException(status_code=404, detail="Match not found")
    match = _match_from(match_id, game)
    service.store.update_match(match)
    # teams or season may have changed, so refresh the old sides as well
    service.recompute_teams([previous.home_team_id, previous.away_team_id], previous.season)
    service.update_standings_for_match(match_id)
    return {"ok": True, "match": _match_dict(match)}


@app.delete("/api/matches/{match_id}")
def delete_match(match_id: str):
    try:
        match = service.store.delete_match(match_id)
    except LeagueError as e:
        raise http_error(e)
    service.recompute_teams([match.home_team_id, match.away_team_id], match.season)
    return {"ok": True, "deleted": match_id}


# ============ STANDINGS ============

@app.get("/api/standings")
def standings(
    season: Optional[str] = Query(None, description="Season (default: current)"),
    team: Optional[str] = Query(None, description="Team to highlight"),
):
    report = service.standings_report(season)
    body = report.to_dict()

    tracked_rank = None
    if team:
        for row in body["standings"]:
            if team.lower() in (row["team_name"].lower(), row["team_id"].lower()):
                tracked_rank = row["rank"]
                break

    return {
        "ok": True,
        "tracked": {"team": team, "rank": tracked_rank},
        **body,
    }


@app.post("/api/standings/recompute")
def recompute_all(season: Optional[str] = Query(None)):
    diagnostics = []
    rows = service.recompute_all(season, diagnostics=diagnostics)
    return {
        "ok": True,
        "count": len(rows),
        "standings": [s.to_dict() for s in rows],
        "diagnostics": [dataclasses.asdict(d) for d in diagnostics],
    }


@app.post("/api/standings/recompute/{team_id}")
def recompute_team(team_id: str, season: Optional[str] = Query(None)):
    try:
        standing = service.recompute(team_id, season)
    except LeagueError as e:
        raise http_error(e)
    return {"ok": True, "standing": standing.to_dict()}


@app.put("/api/standings/{team_id}/manual-rank")
def set_manual_rank(team_id: str, body: ManualRankInput):
    try:
        standing = service.set_manual_rank(team_id, body.enabled, body.rank, body.season)
    except LeagueError as e:
        raise http_error(e)
    return {"ok": True, "standing": standing.to_dict()}


# ============ PLAYOFFS ============

@app.post("/api/playoffs/initialize")
def initialize_playoffs(season: Optional[str] = Query(None)):
    matches = service.initialize_bracket(season)
    return {"ok": True, "count": len(matches), "matches": [m.to_dict() for m in matches]}


@app.get("/api/playoffs")
def playoff_bracket(season: Optional[str] = Query(None)):
    """
    Current bracket, ordered quarterfinals -> semifinals -> final.
    Empty slots show as TBD until the feeding match is decided.
    """
    champion = service.champion(season)
    matches = service.bracket(season)
    return {
        "ok": True,
        "initialized": bool(matches),
        "matches": [m.to_dict() for m in matches],
        "champion": champion,
    }


@app.put("/api/playoffs/{match_id}/teams")
def set_playoff_teams(match_id: str, body: PlayoffTeamsInput):
    """Seed a quarterfinal; later rounds are filled by advancement."""
    try:
        match = service.set_entry_teams(match_id, body.home_team_id, body.away_team_id)
    except LeagueError as e:
        raise http_error(e)
    return {"ok": True, "match": match.to_dict()}


@app.put("/api/playoffs/{match_id}/result")
def record_playoff_result(match_id: str, body: PlayoffResultInput):
    """Record a playoff score; a completed match advances its winner."""
    try:
        match = service.record_playoff_result(
            match_id,
            body.home_score,
            body.away_score,
            home_penalties=body.home_penalties,
            away_penalties=body.away_penalties,
            completed=body.is_completed,
            date=body.date,
            location=body.location,
        )
    except LeagueError as e:
        raise http_error(e)
    return {"ok": True, "match": match.to_dict()}


@app.post("/api/playoffs/{match_id}/advance")
def advance_playoff(match_id: str):
    try:
        update = service.advance(match_id)
    except LeagueError as e:
        raise http_error(e)
    if update is None:
        final = service.store.get_playoff_match(match_id)
        return {"ok": True, "advanced": None, "champion": service.champion(final.season)}
    return {
        "ok": True,
        "advanced": {
            "round": update.target_round.value,
            "match_number": update.target_match_number,
            "slot": update.slot.value,
            "team_id": update.team_id,
            "team_name": update.team_name,
            "changed": update.changed,
        },
    }
