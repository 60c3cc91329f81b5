from __future__ import annotations

import datetime as dt

import pytest

from polo_core.dates import format_api_date, format_api_datetime
from polo_core.dto import HorseDTO, MatchDTO, PlayerDTO, TeamDTO, TournamentDTO
from polo_core.models import AustralianState, HorseColor, HorseGender, Match, MatchResult, Team, Tournament, TournamentGrade
from polo_core.reconcile import EntityReconciler, dependency_order, reconcile

UTC = dt.timezone.utc


def test_spring_cup_is_inserted_then_updated_in_place(store):
    first = reconcile(store, "tournament", [TournamentDTO(id=7, name="Spring Cup", start_date="2025-03-01")])

    assert (first.inserted, first.updated) == (1, 0)
    tournament = store.find_by_remote_id("tournament", 7)
    assert tournament.start_date == dt.datetime(2025, 3, 1, tzinfo=UTC)
    local_id = tournament.local_id

    second = reconcile(store, "tournament", [TournamentDTO(id=7, name="Spring Cup Final", start_date="2025-03-01")])

    assert (second.inserted, second.updated) == (0, 1)
    assert store.count("tournament") == 1
    assert store.find_by_remote_id("tournament", 7).local_id == local_id
    assert store.find_by_remote_id("tournament", 7).name == "Spring Cup Final"


def test_reconcile_is_idempotent(store):
    payload = [TeamDTO(id=1, name="Ellerston", coach="Pat"), TeamDTO(id=2, name="Garangula")]

    reconcile(store, "team", payload)
    reconcile(store, "team", payload)

    assert sorted(team.remote_id for team in store.all("team")) == [1, 2]


def test_local_only_fields_survive_update(store):
    team = store.insert(Team(name="Ellerston", grade=TournamentGrade.HIGH, wins=4, remote_id=1))

    reconcile(store, "team", [TeamDTO(id=1, name="Ellerston Black")])

    assert team.name == "Ellerston Black"
    assert team.grade is TournamentGrade.HIGH
    assert team.wins == 4


def test_null_values_leave_local_field_alone(store):
    tournament = store.insert(Tournament(name="Spring Cup", location="Sydney", remote_id=7))

    reconcile(store, "tournament", [TournamentDTO.model_validate({"id": 7, "name": "Spring Cup", "location": None})])

    assert tournament.location == "Sydney"


def test_records_missing_from_payload_are_kept(store):
    reconcile(store, "team", [TeamDTO(id=1, name="Ellerston"), TeamDTO(id=2, name="Garangula")])

    reconcile(store, "team", [TeamDTO(id=1, name="Ellerston")])

    assert store.find_by_remote_id("team", 2) is not None


def test_stamps_last_synced_at(store):
    seen = dt.datetime(2025, 3, 5, tzinfo=UTC)

    reconcile(store, "team", [TeamDTO(id=1, name="Ellerston")], seen_at=seen)

    assert store.find_by_remote_id("team", 1).last_synced_at == seen


def test_pulled_horse_gets_local_defaults(store):
    reconcile(store, "horse", [HorseDTO(id=3, name="Dolly", pedigree={"info": "By Storm out of Rain"})])

    horse = store.find_by_remote_id("horse", 3)
    assert horse.gender is HorseGender.GELDING
    assert horse.color is HorseColor.BAY
    assert horse.pedigree == "By Storm out of Rain"
    assert horse.breeder_id is None


def test_pulled_team_defaults_to_medium_goal(store):
    reconcile(store, "team", [TeamDTO(id=1, name="Ellerston")])

    assert store.find_by_remote_id("team", 1).grade is TournamentGrade.MEDIUM


def test_player_is_linked_into_team_roster(store):
    team = store.insert(Team(name="Ellerston", remote_id=1))
    payload = [PlayerDTO(id=42, first_name="Alex", surname="Reid", state="NSW", team_id=1)]

    reconcile(store, "player", payload)
    reconcile(store, "player", payload)

    player = store.find_by_remote_id("player", 42)
    assert player.state is AustralianState.NSW
    assert team.player_ids == [player.local_id]


def test_player_moving_team_leaves_old_roster(store):
    old_team = store.insert(Team(name="Ellerston", remote_id=1))
    new_team = store.insert(Team(name="Garangula", remote_id=2))

    reconcile(store, "player", [PlayerDTO(id=42, first_name="Alex", team_id=1)])
    reconcile(store, "player", [PlayerDTO(id=42, first_name="Alex", team_id=2)])

    player = store.find_by_remote_id("player", 42)
    assert old_team.player_ids == []
    assert new_team.player_ids == [player.local_id]


def test_player_with_unknown_team_keeps_current_roster(store):
    team = store.insert(Team(name="Ellerston", remote_id=1))

    reconcile(store, "player", [PlayerDTO(id=42, first_name="Alex", team_id=1)])
    reconcile(store, "player", [PlayerDTO(id=42, first_name="Alex", team_id=99)])

    assert team.player_ids == [store.find_by_remote_id("player", 42).local_id]


def test_unknown_enum_value_is_ignored(store):
    reconcile(store, "player", [PlayerDTO(id=42, first_name="Alex", state="Overseas")])

    assert store.find_by_remote_id("player", 42).state is None


def _spring_cup(store):
    tournament = store.insert(Tournament(name="Spring Cup", remote_id=7))
    home = store.insert(Team(name="Ellerston", remote_id=1))
    away = store.insert(Team(name="Garangula", remote_id=2))
    return tournament, home, away


def test_match_refs_resolve_through_remote_ids(store):
    tournament, home, away = _spring_cup(store)

    result = reconcile(
        store,
        "match",
        [MatchDTO(id=100, tournament_id=7, team1_id=1, team2_id=2, scheduled_time="2025-03-02T10:00:00Z", result="Win")],
    )

    assert result.inserted == 1
    match = store.find_by_remote_id("match", 100)
    assert match.tournament_id == tournament.local_id
    assert match.home_team_id == home.local_id
    assert match.away_team_id == away.local_id
    assert match.date == dt.datetime(2025, 3, 2, 10, 0, tzinfo=UTC)
    assert match.result is MatchResult.WIN


def test_match_with_unknown_team_is_deferred(store):
    _spring_cup(store)

    result = reconcile(store, "match", [MatchDTO(id=100, tournament_id=7, team1_id=1, team2_id=99)])

    assert result.inserted == 0
    assert result.deferred == [100]
    assert store.all("match") == []


def test_scores_overwrite_local_values(store):
    tournament, home, away = _spring_cup(store)
    match = store.insert(
        Match(
            tournament_id=tournament.local_id,
            home_team_id=home.local_id,
            away_team_id=away.local_id,
            home_score=3,
            away_score=3,
            notes="windy",
            remote_id=100,
        )
    )

    reconcile(store, "match", [MatchDTO(id=100, tournament_id=7, team1_id=1, team2_id=2, home_score=5, away_score=4)])

    assert (match.home_score, match.away_score) == (5, 4)
    assert match.notes == "windy"


def test_existing_match_keeps_refs_that_do_not_resolve(store):
    tournament, home, away = _spring_cup(store)
    match = store.insert(
        Match(tournament_id=tournament.local_id, home_team_id=home.local_id, away_team_id=away.local_id, remote_id=100)
    )

    result = EntityReconciler(store, "match").reconcile(
        [MatchDTO(id=100, tournament_id=7, team1_id=1, team2_id=55, notes="moved")]
    )

    assert result.updated == 1
    assert match.away_team_id == away.local_id
    assert match.notes == "moved"


def test_dependency_order_puts_targets_first():
    ordered = dependency_order(["match", "horse", "player", "team", "tournament", "breeder", "field"])

    assert ordered.index("breeder") < ordered.index("horse")
    assert ordered.index("team") < ordered.index("player")
    for target in ("tournament", "team", "field"):
        assert ordered.index(target) < ordered.index("match")


def test_kinds_without_mapping_are_rejected(store):
    with pytest.raises(ValueError, match="No reconciliation mapping"):
        EntityReconciler(store, "duty")


def test_match_without_scores_keeps_local_scores(store):
    tournament, home, away = _spring_cup(store)
    match = store.insert(
        Match(
            tournament_id=tournament.local_id,
            home_team_id=home.local_id,
            away_team_id=away.local_id,
            home_score=3,
            away_score=2,
            remote_id=100,
        )
    )

    reconcile(
        store,
        "match",
        [MatchDTO(id=100, tournament_id=7, team1_id=1, team2_id=2, scheduled_time="2025-03-02T10:00:00Z")],
    )

    assert (match.home_score, match.away_score) == (3, 2)
    assert match.date == dt.datetime(2025, 3, 2, 10, 0, tzinfo=UTC)


def test_calendar_dates_survive_format_and_pull(store):
    start = dt.datetime(2025, 3, 1, tzinfo=UTC)
    end = dt.datetime(2025, 3, 8, tzinfo=UTC)

    reconcile(
        store,
        "tournament",
        [TournamentDTO(id=7, name="Spring Cup", start_date=format_api_date(start), end_date=format_api_date(end))],
    )

    tournament = store.find_by_remote_id("tournament", 7)
    assert tournament.start_date == start
    assert tournament.end_date == end


def test_kick_off_time_survives_format_and_pull(store):
    _spring_cup(store)
    kick_off = dt.datetime(2025, 3, 2, 20, 30, tzinfo=dt.timezone(dt.timedelta(hours=10)))

    reconcile(
        store,
        "match",
        [MatchDTO(id=100, tournament_id=7, team1_id=1, team2_id=2, scheduled_time=format_api_datetime(kick_off))],
    )

    pulled = store.find_by_remote_id("match", 100).date
    assert pulled == kick_off
    assert pulled.tzinfo == UTC
