"""Rank and percentile placement of subjects within a cohort.

Ranks use standard competition ranking (ties share a rank and the next distinct
value skips ahead: 1, 1, 3). Null metric values take no rank slot. Percentile is
the share of ranked peers strictly worse than the subject.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

from backend.app.stats.aggregation import SeasonAggregate
from backend.app.stats.selectors import SubjectType


class Direction(str, Enum):
    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"


@dataclass(frozen=True)
class RankedMetric:
    rank: Optional[int] = None
    percentile: Optional[float] = None


UNRANKED = RankedMetric()

# Tracked metric -> direction, per subject type. Keys name either a derived
# metric or an additive counter.
BATTING_RANKED: Dict[str, Direction] = {
    "avg": Direction.HIGHER_IS_BETTER,
    "obp": Direction.HIGHER_IS_BETTER,
    "slg": Direction.HIGHER_IS_BETTER,
    "ops": Direction.HIGHER_IS_BETTER,
    "runs": Direction.HIGHER_IS_BETTER,
    "hits": Direction.HIGHER_IS_BETTER,
    "home_runs": Direction.HIGHER_IS_BETTER,
    "rbi": Direction.HIGHER_IS_BETTER,
    "stolen_bases": Direction.HIGHER_IS_BETTER,
    "walks": Direction.HIGHER_IS_BETTER,
    "strikeouts": Direction.LOWER_IS_BETTER,
    "war": Direction.HIGHER_IS_BETTER,
}

PITCHING_RANKED: Dict[str, Direction] = {
    "era": Direction.LOWER_IS_BETTER,
    "whip": Direction.LOWER_IS_BETTER,
    "k_per_9": Direction.HIGHER_IS_BETTER,
    "k_pct": Direction.HIGHER_IS_BETTER,
    "bb_pct": Direction.LOWER_IS_BETTER,
    "strike_pct": Direction.HIGHER_IS_BETTER,
    "avg_pitch_velocity": Direction.HIGHER_IS_BETTER,
    "innings_pitched": Direction.HIGHER_IS_BETTER,
    "strikeouts": Direction.HIGHER_IS_BETTER,
    "walks": Direction.LOWER_IS_BETTER,
    "war": Direction.HIGHER_IS_BETTER,
}

TEAM_RANKED: Dict[str, Direction] = {
    "win_pct": Direction.HIGHER_IS_BETTER,
    "run_differential": Direction.HIGHER_IS_BETTER,
    "runs": Direction.HIGHER_IS_BETTER,
    "runs_allowed": Direction.LOWER_IS_BETTER,
    "home_runs": Direction.HIGHER_IS_BETTER,
}

RANKED_METRICS: Dict[SubjectType, Dict[str, Direction]] = {
    SubjectType.BATTING: BATTING_RANKED,
    SubjectType.PITCHING: PITCHING_RANKED,
    SubjectType.TEAM: TEAM_RANKED,
}


def _usable(value: Optional[float]) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def rank(
    cohort: Iterable[Tuple[Hashable, Optional[float]]],
    direction: Direction = Direction.HIGHER_IS_BETTER,
) -> Dict[Hashable, RankedMetric]:
    """Rank one metric across a cohort of ``(id, value)`` pairs."""
    entries = list(cohort)
    result: Dict[Hashable, RankedMetric] = {}
    ranked: List[Tuple[Hashable, float]] = []
    for entity_id, value in entries:
        if _usable(value):
            ranked.append((entity_id, float(value)))
        else:
            result[entity_id] = UNRANKED
    if not ranked:
        return result

    descending = direction is Direction.HIGHER_IS_BETTER
    # Stable sort keeps input order among ties.
    ranked.sort(key=lambda item: item[1], reverse=descending)
    total = len(ranked)

    idx = 0
    while idx < total:
        value = ranked[idx][1]
        end = idx
        while end < total and ranked[end][1] == value:
            end += 1
        # Everyone after this tie group is strictly worse.
        worse = total - end
        if total == 1:
            percentile = 100.0
        else:
            percentile = min(100.0, max(0.0, 100.0 * worse / (total - 1)))
        for entity_id, _ in ranked[idx:end]:
            result[entity_id] = RankedMetric(rank=idx + 1, percentile=percentile)
        idx = end
    return result


def metric_value(agg: SeasonAggregate, name: str) -> Optional[float]:
    if name in agg.metrics:
        return agg.metrics[name]
    return agg.total(name)


def rank_cohort(
    cohort: Sequence[SeasonAggregate],
    metrics: Mapping[str, Direction],
    qualifies: Optional[Callable[[SeasonAggregate], bool]] = None,
) -> Dict[str, Dict[str, RankedMetric]]:
    """Rank every tracked metric independently: subject_id -> metric -> RankedMetric.

    Subjects failing ``qualifies`` are kept out of every pass and come back unranked.
    """
    eligible = [agg for agg in cohort if qualifies is None or qualifies(agg)]
    rankings: Dict[str, Dict[str, RankedMetric]] = {agg.subject_id: {} for agg in cohort}
    for name, direction in metrics.items():
        placed = rank(((agg.subject_id, metric_value(agg, name)) for agg in eligible), direction)
        for agg in cohort:
            rankings[agg.subject_id][name] = placed.get(agg.subject_id, UNRANKED)
    return rankings
