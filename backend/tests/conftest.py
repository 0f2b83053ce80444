from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from backend.app.db import SessionLocal, models
from backend.app.db.base import Base
from backend.app.stats import schema


@pytest.fixture(autouse=True)
def clear_column_cache():
    schema.clear_column_cache()
    yield
    schema.clear_column_cache()


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    return engine


def seed_league(engine):
    """Two batters, two pitchers and two teams across the 2023 and 2024 seasons."""
    with SessionLocal(bind=engine) as session:
        session.add_all(
            [
                models.Team(team_id="119", season=2024, team_name="Los Angeles Dodgers", team_abbr="LAD"),
                models.Team(team_id="147", season=2024, team_name="New York Yankees", team_abbr="NYY"),
                models.Team(team_id="119", season=2023, team_name="Los Angeles Dodgers", team_abbr="LAD"),
            ]
        )
        session.add_all(
            [
                # Batter 1: two 2024 games plus one 2023 game.
                models.BattingGameStat(
                    batter_id="1", player_name="Hitter One", season=2024, game_id="g1",
                    game_date=date(2024, 4, 1), team_id="119", team_name="Los Angeles Dodgers",
                    at_bats=4, hits=2, walks=1, total_bases=5, home_runs=1, rbi=2, runs=1,
                    strikeouts=1, war=0.3,
                ),
                models.BattingGameStat(
                    batter_id="1", player_name="Hitter One", season=2024, game_id="g2",
                    game_date=date(2024, 4, 2), team_id="119", team_name="Los Angeles Dodgers",
                    at_bats=3, hits=1, walks=0, total_bases=1, home_runs=0, rbi=0, runs=0,
                    strikeouts=2, war=0.1,
                ),
                models.BattingGameStat(
                    batter_id="1", player_name="Hitter One", season=2023, game_id="g0",
                    game_date=date(2023, 9, 30), team_id="119", team_name="Los Angeles Dodgers",
                    at_bats=5, hits=1, walks=0, total_bases=1, home_runs=0, rbi=1, runs=0,
                    strikeouts=0, war=0.0,
                ),
                # Batter 2: one 2024 game.
                models.BattingGameStat(
                    batter_id="2", player_name="Hitter Two", season=2024, game_id="g1",
                    game_date=date(2024, 4, 1), team_id="147", team_name="New York Yankees",
                    at_bats=4, hits=1, walks=0, total_bases=4, home_runs=1, rbi=1, runs=1,
                    strikeouts=1, war=0.2,
                ),
                # Row without a batter id: dropped.
                models.BattingGameStat(
                    batter_id=None, player_name="Ghost", season=2024, game_id="g1",
                    at_bats=4, hits=4,
                ),
            ]
        )
        session.add_all(
            [
                models.PitchingGameStat(
                    pitcher_id="10", player_name="Starter Ten", season=2024, game_id="g1",
                    game_date=date(2024, 4, 1), team_id="119", team_name="Los Angeles Dodgers",
                    primary_pitch_type="FF", innings_pitched=6, batters_faced=24, hits_allowed=5,
                    earned_runs=2, walks=1, strikeouts=7, pitches=90, strikes=60, avg_velocity=95.0,
                ),
                models.PitchingGameStat(
                    pitcher_id="10", player_name="Starter Ten", season=2024, game_id="g3",
                    game_date=date(2024, 4, 7), team_id="119", team_name="Los Angeles Dodgers",
                    primary_pitch_type="SL", innings_pitched=3, batters_faced=14, hits_allowed=4,
                    earned_runs=4, walks=2, strikeouts=2, pitches=60, strikes=35, avg_velocity=94.0,
                ),
                # Reliever with no recorded outs.
                models.PitchingGameStat(
                    pitcher_id="11", player_name="Reliever Eleven", season=2024, game_id="g1",
                    game_date=date(2024, 4, 1), team_id="147", team_name="New York Yankees",
                    primary_pitch_type="SI", innings_pitched=0, batters_faced=3, hits_allowed=2,
                    earned_runs=2, walks=1, strikeouts=0, pitches=15, strikes=7, avg_velocity=97.0,
                ),
            ]
        )
        session.add_all(
            [
                models.TeamGameResult(
                    team_id="119", team_name="Los Angeles Dodgers", season=2024, game_id="g1",
                    runs_scored=5, runs_allowed=3, hits=9, home_runs=2, is_win=1, is_loss=0,
                ),
                models.TeamGameResult(
                    team_id="119", team_name="Los Angeles Dodgers", season=2024, game_id="g3",
                    runs_scored=2, runs_allowed=6, hits=5, home_runs=0, is_win=0, is_loss=1,
                ),
                models.TeamGameResult(
                    team_id="147", team_name="New York Yankees", season=2024, game_id="g1",
                    runs_scored=3, runs_allowed=5, hits=6, home_runs=1, is_win=0, is_loss=1,
                ),
                # 2023: the Yankees win the only meeting.
                models.TeamGameResult(
                    team_id="147", team_name="New York Yankees", season=2023, game_id="g0",
                    runs_scored=4, runs_allowed=2, hits=8, home_runs=1, is_win=1, is_loss=0,
                ),
                models.TeamGameResult(
                    team_id="119", team_name="Los Angeles Dodgers", season=2023, game_id="g0",
                    runs_scored=2, runs_allowed=4, hits=5, home_runs=0, is_win=0, is_loss=1,
                ),
            ]
        )
        session.commit()


@pytest.fixture
def league_engine(sqlite_engine):
    seed_league(sqlite_engine)
    return sqlite_engine
