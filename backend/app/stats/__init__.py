from backend.app.stats.aggregation import CAREER, SeasonAggregate, aggregate, aggregate_career, pick_representative
from backend.app.stats.formatting import format_record
from backend.app.stats.formulas import safe_div, with_metrics
from backend.app.stats.ranking import Direction, RankedMetric, rank, rank_cohort
from backend.app.stats.schema import SchemaResolver
from backend.app.stats.service import StatsService

__all__ = [
    "CAREER",
    "Direction",
    "RankedMetric",
    "SchemaResolver",
    "SeasonAggregate",
    "StatsService",
    "aggregate",
    "aggregate_career",
    "format_record",
    "pick_representative",
    "rank",
    "rank_cohort",
    "safe_div",
    "with_metrics",
]
