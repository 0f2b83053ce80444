"""Request selectors shared by every stats view: season and subject type."""
from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple, Union

from backend.app.core.config import Settings, settings as default_settings

CAREER_SELECTORS = frozenset({"", "career", "all", "career_avg", "career-average"})


class SubjectType(str, Enum):
    BATTING = "batting"
    PITCHING = "pitching"
    TEAM = "team"


# Join column against the per-game fact table, most specific name first.
SUBJECT_ID_CANDIDATES = {
    SubjectType.BATTING: ("batter_id", "player_id"),
    SubjectType.PITCHING: ("pitcher_id", "player_id"),
    SubjectType.TEAM: ("team_id",),
}


def is_career(value: Union[str, int, None]) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in CAREER_SELECTORS
    return False


def parse_season(value: Union[str, int, None]) -> Optional[int]:
    """Return the selected season year, or None for the career (all seasons) view."""
    if is_career(value):
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid season selector: {value!r}")
    if isinstance(value, int):
        season = value
    elif isinstance(value, str) and value.strip().isdigit():
        season = int(value.strip())
    else:
        raise ValueError(f"Invalid season selector: {value!r}")
    if season <= 0:
        raise ValueError(f"Invalid season selector: {value!r}")
    return season


def parse_subject_type(value: Union[str, SubjectType, None]) -> SubjectType:
    """Accept the public ``batting`` / ``pitching`` selector values."""
    if isinstance(value, SubjectType) and value is not SubjectType.TEAM:
        return value
    normalized = (value or "").strip().lower() if isinstance(value, str) else ""
    if normalized == SubjectType.BATTING.value:
        return SubjectType.BATTING
    if normalized == SubjectType.PITCHING.value:
        return SubjectType.PITCHING
    raise ValueError(f"Invalid stat type: {value!r} (expected 'batting' or 'pitching')")


def fact_table(subject_type: SubjectType, settings: Optional[Settings] = None) -> str:
    cfg = settings or default_settings
    if subject_type is SubjectType.BATTING:
        table = cfg.batting_game_table
    elif subject_type is SubjectType.PITCHING:
        table = cfg.pitching_game_table
    else:
        table = cfg.team_game_table
    return cfg.table_name(table)


def subject_id_candidates(subject_type: SubjectType) -> Tuple[str, ...]:
    return SUBJECT_ID_CANDIDATES[subject_type]
