"""Output record assembly with an explicit per-field default policy.

Counters default to 0: for counts, "no occurrences" and "unknown" read the same
and zero is the display default. Ratios, derived metrics and rank/percentile
fields default to None, so an unknown value is never shown as a measured zero.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from backend.app.stats.aggregation import SeasonAggregate, season_label
from backend.app.stats.formulas import metric_names
from backend.app.stats.ranking import RankedMetric
from backend.app.stats.records import counter_names
from backend.app.stats.selectors import SubjectType


class Default(str, Enum):
    ZERO = "zero"
    NULL = "null"


# Counters that keep fractional precision in the output.
COUNTER_DECIMALS: Dict[str, int] = {"innings_pitched": 1, "war": 1}

PERCENTILE_DECIMALS = 1


def field_defaults(subject_type: SubjectType) -> Dict[str, Default]:
    """Output field -> default policy for one subject type."""
    policy: Dict[str, Default] = {"games": Default.ZERO}
    for name in counter_names(subject_type):
        policy[name] = Default.ZERO
    for name in metric_names(subject_type):
        policy[name] = Default.NULL
    return policy


FIELD_DEFAULTS: Dict[SubjectType, Dict[str, Default]] = {
    subject_type: field_defaults(subject_type) for subject_type in SubjectType
}


def _counter_value(name: str, value: Any) -> Any:
    decimals = COUNTER_DECIMALS.get(name)
    if decimals is not None:
        return round(float(value), decimals)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _apply_default(policy: Default, value: Any) -> Any:
    if value is not None:
        return value
    return 0 if policy is Default.ZERO else None


def _identity(agg: SeasonAggregate, subject_type: SubjectType) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "subject_id": agg.subject_id,
        "subject_name": agg.subject_name,
        "season": season_label(agg),
    }
    if subject_type is not SubjectType.TEAM:
        record["team_id"] = agg.team_id
        record["team_name"] = agg.team_name
    if subject_type is SubjectType.PITCHING:
        record["primary_pitch_type"] = agg.primary_pitch_type
    return record


def format_record(
    agg: SeasonAggregate,
    subject_type: SubjectType,
    rankings: Optional[Mapping[str, RankedMetric]] = None,
    tracked: Tuple[str, ...] = (),
) -> Dict[str, Any]:
    """Build the output record for one aggregate.

    ``tracked`` names the metrics of the cohort view; each gets ``<metric>_rank``
    and ``<metric>_percentile`` keys, null when the subject was not ranked.
    """
    record = _identity(agg, subject_type)
    for name, policy in FIELD_DEFAULTS[subject_type].items():
        if name == "games":
            value: Any = agg.games
        elif policy is Default.ZERO:
            total = agg.total(name)
            value = None if total is None else _counter_value(name, total)
        else:
            value = agg.metrics.get(name)
        record[name] = _apply_default(policy, value)

    for name in tracked:
        placed = (rankings or {}).get(name)
        rank = placed.rank if placed is not None else None
        percentile = placed.percentile if placed is not None else None
        record[f"{name}_rank"] = rank
        record[f"{name}_percentile"] = (
            round(percentile, PERCENTILE_DECIMALS) if percentile is not None else None
        )
    return record
