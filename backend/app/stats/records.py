"""Typed per-game records and the translation from loosely-typed query rows.

This is the only place that asks the :class:`SchemaResolver` which upstream
column backs each logical field. Everything downstream works with
:class:`GameStatRecord` and never sees raw column names.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from backend.app.core.logging import logger
from backend.app.stats.schema import SchemaResolver
from backend.app.stats.selectors import SubjectType, subject_id_candidates

Candidates = Tuple[str, ...]

SEASON_CANDIDATES: Candidates = ("season", "season_year", "year")
GAME_ID_CANDIDATES: Candidates = ("game_id", "game_pk")
GAME_DATE_CANDIDATES: Candidates = ("game_date", "official_date", "date")

# Games are counted from distinct game ids; this column is the fallback when a
# table has no game id at all.
GAMES_CANDIDATES: Candidates = ("games", "games_played", "g")

BATTING_COUNTERS: Dict[str, Candidates] = {
    "plate_appearances": ("plate_appearances", "pa"),
    "at_bats": ("at_bats", "ab"),
    "runs": ("runs", "r"),
    "hits": ("hits", "h"),
    "doubles": ("doubles",),
    "triples": ("triples",),
    "home_runs": ("home_runs", "hr"),
    "rbi": ("rbi", "runs_batted_in"),
    "stolen_bases": ("stolen_bases", "sb"),
    "caught_stealing": ("caught_stealing", "cs"),
    "walks": ("walks", "base_on_balls", "bb"),
    "strikeouts": ("strikeouts", "strike_outs", "so"),
    "hit_by_pitch": ("hit_by_pitch", "hbp"),
    "sacrifice_flies": ("sacrifice_flies", "sac_flies", "sf"),
    "total_bases": ("total_bases", "tb"),
    "war": ("batting_war", "war_batting", "war"),
}

PITCHING_COUNTERS: Dict[str, Candidates] = {
    "innings_pitched": ("innings_pitched", "ip"),
    "batters_faced": ("batters_faced", "total_batters_faced", "bf"),
    "hits_allowed": ("hits_allowed", "hits"),
    "runs_allowed": ("runs_allowed", "runs"),
    "earned_runs": ("earned_runs", "er"),
    "walks": ("walks", "base_on_balls", "bb"),
    "strikeouts": ("strikeouts", "strike_outs", "so"),
    "home_runs_allowed": ("home_runs_allowed", "home_runs"),
    "pitches": ("pitches", "number_of_pitches", "pitch_count"),
    "strikes": ("strikes",),
    "quality_starts": ("quality_starts", "quality_start"),
    "war": ("pitching_war", "war_pitching", "war"),
}

TEAM_COUNTERS: Dict[str, Candidates] = {
    "runs": ("runs_scored", "runs"),
    "runs_allowed": ("runs_allowed", "opponent_runs"),
    "hits": ("hits",),
    "home_runs": ("home_runs",),
    "wins": ("wins", "is_win", "win"),
    "losses": ("losses", "is_loss", "loss"),
}

COUNTERS_BY_SUBJECT: Dict[SubjectType, Dict[str, Candidates]] = {
    SubjectType.BATTING: BATTING_COUNTERS,
    SubjectType.PITCHING: PITCHING_COUNTERS,
    SubjectType.TEAM: TEAM_COUNTERS,
}

_NAME_CANDIDATES: Dict[SubjectType, Candidates] = {
    SubjectType.BATTING: ("player_name", "batter_name", "full_name"),
    SubjectType.PITCHING: ("player_name", "pitcher_name", "full_name"),
    SubjectType.TEAM: ("team_name",),
}

_TEAM_ID_CANDIDATES: Candidates = ("team_id",)
_TEAM_NAME_CANDIDATES: Candidates = ("team_name", "team_abbrev", "team_abbr")
_PITCH_TYPE_CANDIDATES: Candidates = ("primary_pitch_type", "pitch_type")
_VELOCITY_CANDIDATES: Candidates = ("avg_velocity", "avg_pitch_velocity", "release_speed")


@dataclass(frozen=True)
class GameStatRecord:
    """One subject's statistics for one game (or one upstream row of a game)."""

    subject_id: str
    season: int
    game_id: Optional[str] = None
    game_date: Optional[date] = None
    subject_name: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    pitch_type: Optional[str] = None
    avg_pitch_velocity: Optional[float] = None
    counters: Mapping[str, Optional[float]] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolvedFields:
    """Logical field -> upstream column for one table, as currently resolved."""

    table: str
    subject_type: SubjectType
    subject_id: Optional[str]
    season: Optional[str]
    game_id: Optional[str] = None
    game_date: Optional[str] = None
    subject_name: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    pitch_type: Optional[str] = None
    avg_pitch_velocity: Optional[str] = None
    games: Optional[str] = None
    counters: Mapping[str, Optional[str]] = field(default_factory=dict)

    @property
    def available_counters(self) -> FrozenSet[str]:
        return frozenset(name for name, column in self.counters.items() if column is not None)

    @property
    def is_usable(self) -> bool:
        return self.subject_id is not None and self.season is not None

    def selected_columns(self) -> List[str]:
        """Distinct resolved columns, in a stable order, for building a SELECT list."""
        columns: List[str] = []
        scalars = [
            self.subject_id,
            self.season,
            self.game_id,
            self.game_date,
            self.subject_name,
            self.team_id,
            self.team_name,
            self.pitch_type,
            self.avg_pitch_velocity,
            self.games,
        ]
        for column in [*scalars, *self.counters.values()]:
            if column is not None and column not in columns:
                columns.append(column)
        return columns


def resolve_fields(resolver: SchemaResolver, table: str, subject_type: SubjectType) -> ResolvedFields:
    counter_candidates = COUNTERS_BY_SUBJECT[subject_type]
    scalar_candidates: Dict[str, Candidates] = {
        "subject_id": subject_id_candidates(subject_type),
        "season": SEASON_CANDIDATES,
        "game_id": GAME_ID_CANDIDATES,
        "game_date": GAME_DATE_CANDIDATES,
        "subject_name": _NAME_CANDIDATES[subject_type],
        "team_id": _TEAM_ID_CANDIDATES,
        "team_name": _TEAM_NAME_CANDIDATES,
        "games": GAMES_CANDIDATES,
    }
    if subject_type is SubjectType.PITCHING:
        scalar_candidates["pitch_type"] = _PITCH_TYPE_CANDIDATES
        scalar_candidates["avg_pitch_velocity"] = _VELOCITY_CANDIDATES

    # Single batch: one column listing per table.
    resolved = resolver.resolve_many(table, {**scalar_candidates, **counter_candidates})
    return ResolvedFields(
        table=table,
        subject_type=subject_type,
        counters={name: resolved[name] for name in counter_candidates},
        **{name: resolved[name] for name in scalar_candidates},
    )


def to_number(value: Any) -> Optional[float]:
    """Coerce a loosely-typed scalar to int/float; None for anything non-numeric or non-finite."""
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        value = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            value = float(stripped)
        except ValueError:
            return None
    if not isinstance(value, float) or not math.isfinite(value):
        return None
    return int(value) if value.is_integer() else value


def _to_key(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            value = int(value)
    key = str(value).strip()
    return key or None


def _to_season(value: Any) -> Optional[int]:
    number = to_number(value)
    if not isinstance(number, int) or number <= 0:
        return None
    return number


def _to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text_value = str(value).strip()
    return text_value or None


def _to_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _get(row: Mapping[str, Any], column: Optional[str]) -> Any:
    if column is None:
        return None
    if column in row:
        return row[column]
    lowered = column.lower()
    for key, value in row.items():
        if str(key).lower() == lowered:
            return value
    return None


def to_record(row: Mapping[str, Any], fields: ResolvedFields) -> Optional[GameStatRecord]:
    """Translate one row; None when its subject or season key is missing or malformed."""
    subject_id = _to_key(_get(row, fields.subject_id))
    season = _to_season(_get(row, fields.season))
    if subject_id is None or season is None:
        return None

    counters: Dict[str, Optional[float]] = {
        name: to_number(_get(row, fields.counters[name])) for name in fields.available_counters
    }
    if fields.games is not None:
        counters["games"] = to_number(_get(row, fields.games))

    return GameStatRecord(
        subject_id=subject_id,
        season=season,
        game_id=_to_key(_get(row, fields.game_id)),
        game_date=_to_date(_get(row, fields.game_date)),
        subject_name=_to_text(_get(row, fields.subject_name)),
        team_id=_to_key(_get(row, fields.team_id)),
        team_name=_to_text(_get(row, fields.team_name)),
        pitch_type=_to_text(_get(row, fields.pitch_type)),
        avg_pitch_velocity=to_number(_get(row, fields.avg_pitch_velocity)),
        counters=counters,
    )


def to_records(rows: Iterable[Mapping[str, Any]], fields: ResolvedFields) -> List[GameStatRecord]:
    records: List[GameStatRecord] = []
    dropped = 0
    for row in rows:
        record = to_record(row, fields)
        if record is None:
            dropped += 1
            continue
        records.append(record)
    if dropped:
        logger.debug("Dropped %s rows from %s with missing subject/season keys", dropped, fields.table)
    return records


def counter_names(subject_type: SubjectType) -> Sequence[str]:
    return tuple(COUNTERS_BY_SUBJECT[subject_type].keys())
