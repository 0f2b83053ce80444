from datetime import date

import pytest

from backend.app.stats.aggregation import PickRule, aggregate, aggregate_career, pick_representative
from backend.app.stats.records import GameStatRecord


def _rec(subject_id="1", season=2024, game_id=None, **kwargs):
    counters = kwargs.pop("counters", {})
    return GameStatRecord(subject_id=subject_id, season=season, game_id=game_id, counters=counters, **kwargs)


def test_two_games_sum_into_season_totals():
    records = [
        _rec(game_id="g1", counters={"at_bats": 4, "hits": 2}),
        _rec(game_id="g2", counters={"at_bats": 3, "hits": 1}),
    ]

    (agg,) = aggregate(records)
    assert agg.subject_id == "1"
    assert agg.season == 2024
    assert agg.total("at_bats") == 7
    assert agg.total("hits") == 3
    assert agg.games == 2


def test_games_count_distinct_game_ids():
    # One row per opposing pitcher faced in the same game.
    records = [
        _rec(game_id="g1", counters={"at_bats": 2, "hits": 1}),
        _rec(game_id="g1", counters={"at_bats": 2, "hits": 0}),
        _rec(game_id="g2", counters={"at_bats": 4, "hits": 2}),
    ]

    (agg,) = aggregate(records)
    assert agg.games == 2
    assert agg.total("at_bats") == 8
    assert agg.total("hits") == 3


def test_games_fall_back_to_games_column_without_game_ids():
    records = [
        _rec(counters={"games": 10, "at_bats": 30}),
        _rec(counters={"games": 5, "at_bats": 12}),
    ]

    (agg,) = aggregate(records)
    assert agg.games == 15
    assert "games" not in agg.available


def test_all_null_additive_field_sums_to_zero():
    records = [
        _rec(game_id="g1", counters={"stolen_bases": None}),
        _rec(game_id="g2", counters={"stolen_bases": None}),
    ]

    (agg,) = aggregate(records)
    assert agg.total("stolen_bases") == 0


def test_structurally_absent_counter_is_none():
    (agg,) = aggregate([_rec(game_id="g1", counters={"at_bats": 4})])
    assert agg.total("war") is None


def test_partitions_by_subject_and_season():
    records = [
        _rec(subject_id="1", season=2024, game_id="a", counters={"hits": 1}),
        _rec(subject_id="2", season=2024, game_id="a", counters={"hits": 2}),
        _rec(subject_id="1", season=2023, game_id="b", counters={"hits": 3}),
    ]

    aggs = aggregate(records)
    assert [(a.subject_id, a.season, a.total("hits")) for a in aggs] == [
        ("1", 2023, 3),
        ("1", 2024, 1),
        ("2", 2024, 2),
    ]


def test_career_totals_equal_sum_of_seasons():
    records = [
        _rec(season=2022, game_id="a", counters={"hits": 100, "at_bats": 400}),
        _rec(season=2023, game_id="b", counters={"hits": 120, "at_bats": 450}),
        _rec(season=2023, game_id="c", counters={"hits": 3, "at_bats": 5}),
        _rec(season=2024, game_id="d", counters={"hits": 90, "at_bats": 380}),
    ]

    seasons = aggregate(records)
    (career,) = aggregate_career(records)
    assert career.is_career
    assert career.season is None
    for name in ("hits", "at_bats"):
        assert career.total(name) == sum(agg.total(name) for agg in seasons)
    assert career.games == sum(agg.games for agg in seasons)


def test_rows_without_keys_are_skipped():
    records = [
        _rec(subject_id="", game_id="a", counters={"hits": 5}),
        _rec(season=None, game_id="b", counters={"hits": 5}),
        _rec(game_id="c", counters={"hits": 1}),
    ]

    (agg,) = aggregate(records)
    assert agg.total("hits") == 1


def test_empty_input_yields_no_aggregates():
    assert aggregate([]) == []


def test_representative_fields_are_picked_not_summed():
    records = [
        _rec(game_id="g1", team_id="147", team_name="New York Yankees", pitch_type="SL", counters={}),
        _rec(game_id="g2", team_id="119", team_name="Los Angeles Dodgers", pitch_type="FF", counters={}),
        _rec(game_id="g3", team_id="119", team_name="Los Angeles Dodgers", pitch_type="FF", counters={}),
    ]

    (agg,) = aggregate(records)
    assert agg.team_name == "Los Angeles Dodgers"
    assert agg.team_id == "119"
    assert agg.primary_pitch_type == "FF"


def test_subject_name_uses_most_recent_game():
    records = [
        _rec(game_id="g2", game_date=date(2024, 5, 1), subject_name="Mike Smith Jr.", counters={}),
        _rec(game_id="g1", game_date=date(2024, 4, 1), subject_name="Mike Smith", counters={}),
    ]

    (agg,) = aggregate(records)
    assert agg.subject_name == "Mike Smith Jr."


def test_pitch_velocity_is_weighted_by_pitches():
    records = [
        _rec(game_id="g1", avg_pitch_velocity=95.0, counters={"pitches": 90}),
        _rec(game_id="g2", avg_pitch_velocity=94.0, counters={"pitches": 60}),
    ]

    (agg,) = aggregate(records)
    assert agg.weighted["avg_pitch_velocity"] == pytest.approx(94.6)


def test_pick_most_frequent_breaks_ties_by_first_seen():
    assert pick_representative(["SL", "FF", "FF", "SL"], PickRule.MOST_FREQUENT) == "SL"
    assert pick_representative([None, "CU", "FF", "FF"], PickRule.MOST_FREQUENT) == "FF"
    assert pick_representative([None, None], PickRule.MOST_FREQUENT) is None


def test_pick_most_recent():
    values = ["NYY", "LAD", "SD"]
    assert pick_representative(values, PickRule.MOST_RECENT) == "SD"
    assert pick_representative(values, PickRule.MOST_RECENT, recency=[3, 5, 1]) == "LAD"
    # Equal recency keeps the first value seen.
    assert pick_representative(values, PickRule.MOST_RECENT, recency=[5, 5, 1]) == "NYY"
    assert pick_representative(["NYY", None], PickRule.MOST_RECENT) == "NYY"
