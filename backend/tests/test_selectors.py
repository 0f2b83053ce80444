import pytest

from backend.app.core.config import Settings
from backend.app.stats.selectors import SubjectType, fact_table, parse_season, parse_subject_type


@pytest.mark.parametrize("value", [None, "", "career", "CAREER", "all", "ALL", "  All ", "career_avg", "career-average"])
def test_career_selectors_mean_all_seasons(value):
    assert parse_season(value) is None


@pytest.mark.parametrize("value,expected", [("2024", 2024), (" 2023 ", 2023), (2022, 2022)])
def test_year_selectors(value, expected):
    assert parse_season(value) == expected


@pytest.mark.parametrize("value", ["last-year", "2024.5", "-2024", "0", 0, True])
def test_invalid_season_selectors_raise(value):
    with pytest.raises(ValueError):
        parse_season(value)


def test_subject_type_parsing():
    assert parse_subject_type("batting") is SubjectType.BATTING
    assert parse_subject_type(" Pitching ") is SubjectType.PITCHING
    assert parse_subject_type(SubjectType.PITCHING) is SubjectType.PITCHING
    for bad in ("fielding", "", None, "team", SubjectType.TEAM):
        with pytest.raises(ValueError):
            parse_subject_type(bad)


def test_fact_table_prefixes_dataset(monkeypatch):
    monkeypatch.setenv("STATS_DATASET", "analytics")
    cfg = Settings()
    assert fact_table(SubjectType.BATTING, cfg) == "analytics.fct_mlb__player_batting_game_stats"
    assert fact_table(SubjectType.TEAM, cfg) == "analytics.fct_mlb__team_game_results"
