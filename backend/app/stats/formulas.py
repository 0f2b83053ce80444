"""Null-safe sabermetric formulas over season/career aggregates.

Every formula is computed at full precision and rounded once, when the metrics
block is attached to the aggregate. A formula whose input the upstream schema
does not supply yields None, never a made-up number.
"""
from __future__ import annotations

import math
from dataclasses import replace
from typing import Callable, Dict, Optional

from backend.app.stats.aggregation import SeasonAggregate
from backend.app.stats.selectors import SubjectType

Metrics = Dict[str, Optional[float]]

BATTING_METRICS = ("avg", "obp", "slg", "ops")
PITCHING_METRICS = ("era", "whip", "k_per_9", "k_pct", "bb_pct", "strike_pct", "avg_pitch_velocity")
TEAM_METRICS = ("run_differential", "win_pct")

# Display precision per metric.
METRIC_DECIMALS: Dict[str, int] = {
    "avg": 3,
    "obp": 3,
    "slg": 3,
    "ops": 3,
    "k_pct": 3,
    "bb_pct": 3,
    "strike_pct": 3,
    "win_pct": 3,
    "era": 2,
    "whip": 2,
    "k_per_9": 2,
    "avg_pitch_velocity": 1,
    "run_differential": 0,
}


def safe_div(numer: Optional[float], denom: Optional[float]) -> Optional[float]:
    if numer is None or denom is None or denom == 0:
        return None
    result = float(numer) / float(denom)
    if not math.isfinite(result):
        return None
    return result


def _add(*values: Optional[float]) -> Optional[float]:
    if any(value is None for value in values):
        return None
    return sum(values)


def _mul(value: Optional[float], factor: float) -> Optional[float]:
    return None if value is None else value * factor


def round_metric(name: str, value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    decimals = METRIC_DECIMALS.get(name, 3)
    if decimals == 0:
        return int(round(value))
    return round(value, decimals)


def _rounded(raw: Metrics) -> Metrics:
    return {name: round_metric(name, value) for name, value in raw.items()}


def batting_metrics_raw(agg: SeasonAggregate) -> Metrics:
    hits = agg.total("hits")
    at_bats = agg.total("at_bats")
    walks = agg.total("walks")
    avg = safe_div(hits, at_bats)
    obp = safe_div(_add(hits, walks), _add(at_bats, walks))
    slg = safe_div(agg.total("total_bases"), at_bats)
    return {"avg": avg, "obp": obp, "slg": slg, "ops": _add(obp, slg)}


def pitching_metrics_raw(agg: SeasonAggregate) -> Metrics:
    innings = agg.total("innings_pitched")
    batters_faced = agg.total("batters_faced")
    strikeouts = agg.total("strikeouts")
    walks = agg.total("walks")
    return {
        "era": safe_div(_mul(agg.total("earned_runs"), 9), innings),
        "whip": safe_div(_add(walks, agg.total("hits_allowed")), innings),
        "k_per_9": safe_div(_mul(strikeouts, 9), innings),
        "k_pct": safe_div(strikeouts, batters_faced),
        "bb_pct": safe_div(walks, batters_faced),
        "strike_pct": safe_div(agg.total("strikes"), agg.total("pitches")),
        "avg_pitch_velocity": agg.weighted.get("avg_pitch_velocity"),
    }


def team_metrics_raw(agg: SeasonAggregate) -> Metrics:
    runs = agg.total("runs")
    runs_allowed = agg.total("runs_allowed")
    wins = agg.total("wins")
    run_differential = None if runs is None or runs_allowed is None else runs - runs_allowed
    return {
        "run_differential": run_differential,
        "win_pct": safe_div(wins, _add(wins, agg.total("losses"))),
    }


def compute_batting_metrics(agg: SeasonAggregate) -> Metrics:
    return _rounded(batting_metrics_raw(agg))


def compute_pitching_metrics(agg: SeasonAggregate) -> Metrics:
    return _rounded(pitching_metrics_raw(agg))


def compute_team_metrics(agg: SeasonAggregate) -> Metrics:
    return _rounded(team_metrics_raw(agg))


_CALCULATORS: Dict[SubjectType, Callable[[SeasonAggregate], Metrics]] = {
    SubjectType.BATTING: compute_batting_metrics,
    SubjectType.PITCHING: compute_pitching_metrics,
    SubjectType.TEAM: compute_team_metrics,
}


def with_metrics(agg: SeasonAggregate, subject_type: SubjectType) -> SeasonAggregate:
    """Return a copy of ``agg`` carrying its derived metrics block."""
    return replace(agg, metrics=_CALCULATORS[subject_type](agg))


def metric_names(subject_type: SubjectType) -> tuple:
    if subject_type is SubjectType.BATTING:
        return BATTING_METRICS
    if subject_type is SubjectType.PITCHING:
        return PITCHING_METRICS
    return TEAM_METRICS
