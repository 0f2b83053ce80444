"""ORM models for the analytic store's MLB fact and dimension tables.

Production reads these tables through raw text queries (see
``backend.app.stats.warehouse``); the models exist so local databases and tests
can create the same shape.
"""
from datetime import date
from typing import Optional

from sqlalchemy import BigInteger, Date, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.core.config import settings
from backend.app.db.base import Base


class Team(Base):
    __tablename__ = settings.teams_table

    team_id: Mapped[str] = mapped_column(String(16), primary_key=True)
    season: Mapped[int] = mapped_column(Integer, primary_key=True)
    team_name: Mapped[str] = mapped_column(Text, nullable=False)
    team_abbr: Mapped[Optional[str]] = mapped_column(String(8))


class BattingGameStat(Base):
    __tablename__ = settings.batting_game_table
    __table_args__ = (
        Index("idx_batting_game_batter", "batter_id"),
        Index("idx_batting_game_season", "season"),
    )

    row_id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    batter_id: Mapped[Optional[str]] = mapped_column(String(16))
    player_name: Mapped[Optional[str]] = mapped_column(Text)
    season: Mapped[Optional[int]] = mapped_column(Integer)
    game_id: Mapped[Optional[str]] = mapped_column(String(32))
    game_date: Mapped[Optional[date]] = mapped_column(Date)
    team_id: Mapped[Optional[str]] = mapped_column(String(16))
    team_name: Mapped[Optional[str]] = mapped_column(Text)
    plate_appearances: Mapped[Optional[int]] = mapped_column(Integer)
    at_bats: Mapped[Optional[int]] = mapped_column(Integer)
    runs: Mapped[Optional[int]] = mapped_column(Integer)
    hits: Mapped[Optional[int]] = mapped_column(Integer)
    doubles: Mapped[Optional[int]] = mapped_column(Integer)
    triples: Mapped[Optional[int]] = mapped_column(Integer)
    home_runs: Mapped[Optional[int]] = mapped_column(Integer)
    rbi: Mapped[Optional[int]] = mapped_column(Integer)
    stolen_bases: Mapped[Optional[int]] = mapped_column(Integer)
    caught_stealing: Mapped[Optional[int]] = mapped_column(Integer)
    walks: Mapped[Optional[int]] = mapped_column(Integer)
    strikeouts: Mapped[Optional[int]] = mapped_column(Integer)
    hit_by_pitch: Mapped[Optional[int]] = mapped_column(Integer)
    sacrifice_flies: Mapped[Optional[int]] = mapped_column(Integer)
    total_bases: Mapped[Optional[int]] = mapped_column(Integer)
    war: Mapped[Optional[float]] = mapped_column(Numeric(6, 2))


class PitchingGameStat(Base):
    __tablename__ = settings.pitching_game_table
    __table_args__ = (
        Index("idx_pitching_game_pitcher", "pitcher_id"),
        Index("idx_pitching_game_season", "season"),
    )

    row_id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    pitcher_id: Mapped[Optional[str]] = mapped_column(String(16))
    player_name: Mapped[Optional[str]] = mapped_column(Text)
    season: Mapped[Optional[int]] = mapped_column(Integer)
    game_id: Mapped[Optional[str]] = mapped_column(String(32))
    game_date: Mapped[Optional[date]] = mapped_column(Date)
    team_id: Mapped[Optional[str]] = mapped_column(String(16))
    team_name: Mapped[Optional[str]] = mapped_column(Text)
    primary_pitch_type: Mapped[Optional[str]] = mapped_column(String(8))
    innings_pitched: Mapped[Optional[float]] = mapped_column(Numeric(6, 3))
    batters_faced: Mapped[Optional[int]] = mapped_column(Integer)
    hits_allowed: Mapped[Optional[int]] = mapped_column(Integer)
    runs_allowed: Mapped[Optional[int]] = mapped_column(Integer)
    earned_runs: Mapped[Optional[int]] = mapped_column(Integer)
    walks: Mapped[Optional[int]] = mapped_column(Integer)
    strikeouts: Mapped[Optional[int]] = mapped_column(Integer)
    home_runs_allowed: Mapped[Optional[int]] = mapped_column(Integer)
    pitches: Mapped[Optional[int]] = mapped_column(Integer)
    strikes: Mapped[Optional[int]] = mapped_column(Integer)
    avg_velocity: Mapped[Optional[float]] = mapped_column(Numeric(5, 2))
    quality_start: Mapped[Optional[int]] = mapped_column(Integer)
    war: Mapped[Optional[float]] = mapped_column(Numeric(6, 2))


class TeamGameResult(Base):
    __tablename__ = settings.team_game_table
    __table_args__ = (Index("idx_team_game_team_season", "team_id", "season"),)

    row_id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    team_id: Mapped[Optional[str]] = mapped_column(String(16))
    team_name: Mapped[Optional[str]] = mapped_column(Text)
    season: Mapped[Optional[int]] = mapped_column(Integer)
    game_id: Mapped[Optional[str]] = mapped_column(String(32))
    game_date: Mapped[Optional[date]] = mapped_column(Date)
    runs_scored: Mapped[Optional[int]] = mapped_column(Integer)
    runs_allowed: Mapped[Optional[int]] = mapped_column(Integer)
    hits: Mapped[Optional[int]] = mapped_column(Integer)
    home_runs: Mapped[Optional[int]] = mapped_column(Integer)
    is_win: Mapped[Optional[int]] = mapped_column(Integer)
    is_loss: Mapped[Optional[int]] = mapped_column(Integer)
