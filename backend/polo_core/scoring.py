from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

from .models import Match, MatchResult
from .store import LocalStore


@dataclass
class StandingRow:
    team_id: str
    name: str
    games_played: int
    wins: int
    losses: int
    draws: int
    goals_for: int
    goals_against: int
    goal_difference: int
    win_percentage: float


def _result_for(home_score: int, away_score: int) -> MatchResult:
    if home_score > away_score:
        return MatchResult.WIN
    if away_score > home_score:
        return MatchResult.LOSS
    return MatchResult.DRAW


def _apply_tally(home: Any, away: Any, home_score: int, away_score: int, result: MatchResult, sign: int) -> None:
    home.goals_for += sign * home_score
    home.goals_against += sign * away_score
    away.goals_for += sign * away_score
    away.goals_against += sign * home_score

    if result is MatchResult.WIN:
        home.wins += sign
        away.losses += sign
    elif result is MatchResult.LOSS:
        away.wins += sign
        home.losses += sign
    elif result is MatchResult.DRAW:
        home.draws += sign
        away.draws += sign


def record_score(store: LocalStore, match: Match, home_score: int, away_score: int) -> MatchResult:
    """Record a final score on ``match`` and roll it into both teams' tallies.

    The result is from the home team's point of view. Re-scoring a match
    first backs out whatever this function previously added for it; scores
    and results pulled from the server were never tallied and are not
    subtracted.
    """
    if home_score < 0 or away_score < 0:
        raise ValueError("Scores cannot be negative")

    home = store.get("team", match.home_team_id) if match.home_team_id else None
    away = store.get("team", match.away_team_id) if match.away_team_id else None
    teams_known = home is not None and away is not None

    if teams_known and match.tallied_home_score is not None and match.tallied_away_score is not None:
        previous_home, previous_away = match.tallied_home_score, match.tallied_away_score
        _apply_tally(home, away, previous_home, previous_away, _result_for(previous_home, previous_away), -1)
        match.tallied_home_score = match.tallied_away_score = None

    result = _result_for(home_score, away_score)
    match.home_score = home_score
    match.away_score = away_score
    match.result = result

    if teams_known:
        _apply_tally(home, away, home_score, away_score, result, 1)
        match.tallied_home_score = home_score
        match.tallied_away_score = away_score
    return result


def team_standings(store: LocalStore) -> List[StandingRow]:
    rows: List[StandingRow] = []
    for team in store.all("team"):
        played = team.games_played
        rows.append(
            StandingRow(
                team_id=team.local_id,
                name=team.name,
                games_played=played,
                wins=team.wins,
                losses=team.losses,
                draws=team.draws,
                goals_for=team.goals_for,
                goals_against=team.goals_against,
                goal_difference=team.goal_difference,
                win_percentage=(team.wins / played * 100) if played else 0.0,
            )
        )
    rows.sort(key=lambda row: (-row.wins, -row.goal_difference, -row.goals_for, row.name.lower()))
    return rows
