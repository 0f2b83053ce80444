from datetime import date
from decimal import Decimal

from backend.app.stats.records import resolve_fields, to_number, to_records
from backend.app.stats.schema import SchemaResolver
from backend.app.stats.selectors import SubjectType


def _fields(columns, subject_type=SubjectType.BATTING):
    resolver = SchemaResolver(lambda table: columns, cache={})
    return resolve_fields(resolver, "fct_table", subject_type)


def test_resolve_fields_follows_renamed_columns():
    fields = _fields(["player_id", "year", "game_pk", "ab", "h", "batting_war"])

    assert fields.subject_id == "player_id"
    assert fields.season == "year"
    assert fields.game_id == "game_pk"
    assert fields.counters["at_bats"] == "ab"
    assert fields.counters["hits"] == "h"
    assert fields.counters["war"] == "batting_war"
    assert fields.counters["walks"] is None
    assert fields.available_counters == {"at_bats", "hits", "war"}


def test_pitching_join_column_prefers_pitcher_id():
    fields = _fields(["pitcher_id", "player_id", "season"], SubjectType.PITCHING)
    assert fields.subject_id == "pitcher_id"


def test_rows_become_typed_records():
    fields = _fields(["batter_id", "season", "game_id", "game_date", "team_name", "at_bats", "hits"])
    rows = [
        {
            "batter_id": 660271,
            "season": "2024",
            "game_id": 745001,
            "game_date": "2024-04-01",
            "team_name": "Los Angeles Dodgers",
            "at_bats": Decimal("4"),
            "hits": None,
        }
    ]

    (record,) = to_records(rows, fields)
    assert record.subject_id == "660271"
    assert record.season == 2024
    assert record.game_id == "745001"
    assert record.game_date == date(2024, 4, 1)
    assert record.team_name == "Los Angeles Dodgers"
    assert record.counters == {"at_bats": 4, "hits": None}


def test_rows_missing_keys_are_dropped():
    fields = _fields(["batter_id", "season", "at_bats"])
    rows = [
        {"batter_id": None, "season": 2024, "at_bats": 3},
        {"batter_id": "1", "season": None, "at_bats": 3},
        {"batter_id": "1", "season": "not-a-year", "at_bats": 3},
        {"batter_id": "  ", "season": 2024, "at_bats": 3},
        {"batter_id": "1", "season": 2024, "at_bats": 3},
    ]

    records = to_records(rows, fields)
    assert [r.subject_id for r in records] == ["1"]


def test_to_number_rejects_non_finite_and_text():
    assert to_number(float("nan")) is None
    assert to_number(float("inf")) is None
    assert to_number("abc") is None
    assert to_number("") is None
    assert to_number("6.5") == 6.5
    assert to_number(3.0) == 3
    assert to_number(True) == 1


def test_resolve_fields_lists_columns_once():
    calls = []

    def list_columns(table):
        calls.append(table)
        return ["pitcher_id", "season", "game_id", "innings_pitched", "avg_velocity"]

    fields = resolve_fields(SchemaResolver(list_columns, cache={}), "fct_pitching", SubjectType.PITCHING)
    assert fields.subject_id == "pitcher_id"
    assert fields.avg_pitch_velocity == "avg_velocity"
    assert fields.available_counters == {"innings_pitched"}
    assert calls == ["fct_pitching"]
