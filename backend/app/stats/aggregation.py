"""Roll per-game records up into season and career aggregates."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from backend.app.core.logging import logger
from backend.app.stats.records import GameStatRecord

# Season value emitted for career (all seasons combined) aggregates.
CAREER = "career"


class PickRule(str, Enum):
    MOST_FREQUENT = "most_frequent"
    MOST_RECENT = "most_recent"


@dataclass(frozen=True)
class SeasonAggregate:
    subject_id: str
    season: Optional[int]
    games: int = 0
    totals: Mapping[str, float] = field(default_factory=dict)
    available: FrozenSet[str] = frozenset()
    subject_name: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    primary_pitch_type: Optional[str] = None
    weighted: Mapping[str, Optional[float]] = field(default_factory=dict)
    metrics: Mapping[str, Optional[float]] = field(default_factory=dict)

    @property
    def is_career(self) -> bool:
        return self.season is None

    def total(self, name: str) -> Optional[float]:
        """Summed counter, or None when the upstream schema never supplied it."""
        if name not in self.available:
            return None
        return self.totals.get(name, 0)


def pick_representative(
    values: Sequence[Any],
    rule: PickRule = PickRule.MOST_FREQUENT,
    recency: Optional[Sequence[Any]] = None,
) -> Any:
    """Pick one value out of many observations; None values are ignored.

    ``most_frequent`` returns the value seen most often. ``most_recent`` returns
    the value with the greatest ``recency`` key (row position when no keys are
    given, or when a value's key is missing). Ties go to the first value seen.
    """
    observed = [(idx, value) for idx, value in enumerate(values) if value is not None]
    if not observed:
        return None

    if rule is PickRule.MOST_FREQUENT:
        counts = Counter(value for _, value in observed)
        best_count = max(counts.values())
        for _, value in observed:
            if counts[value] == best_count:
                return value

    if rule is PickRule.MOST_RECENT:
        if recency is None or all(recency[idx] is None for idx, _ in observed):
            return observed[-1][1]
        dated = [(recency[idx], idx, value) for idx, value in observed if recency[idx] is not None]
        latest = max(key for key, _, _ in dated)
        for key, _, value in dated:
            if key == latest:
                return value

    raise ValueError(f"Unsupported pick rule: {rule!r}")


def _sum_counter(records: Sequence[GameStatRecord], name: str) -> float:
    total: float = 0
    for record in records:
        value = record.counters.get(name)
        if value is not None:
            total += value
    return total


def _count_games(records: Sequence[GameStatRecord]) -> int:
    # Some fact tables emit several rows per game per subject, so games are
    # distinct game ids rather than rows.
    game_ids = {record.game_id for record in records if record.game_id is not None}
    if game_ids:
        return len(game_ids)
    return int(_sum_counter(records, "games"))


def _weighted_mean(records: Sequence[GameStatRecord]) -> Optional[float]:
    numer = 0.0
    denom = 0.0
    for record in records:
        weight = record.counters.get("pitches")
        if record.avg_pitch_velocity is None or not weight:
            continue
        numer += record.avg_pitch_velocity * weight
        denom += weight
    if denom <= 0:
        return None
    return numer / denom


def _valid_key(record: GameStatRecord) -> bool:
    if not isinstance(record.subject_id, str) or not record.subject_id.strip():
        return False
    return isinstance(record.season, int) and not isinstance(record.season, bool) and record.season > 0


def _build(subject_id: str, season: Optional[int], records: Sequence[GameStatRecord]) -> SeasonAggregate:
    available: set = set()
    for record in records:
        available.update(record.counters.keys())
    available.discard("games")
    totals = {name: _sum_counter(records, name) for name in sorted(available)}

    recency: List[Tuple[int, date]] = [(r.season, r.game_date or date.min) for r in records]
    team_name = pick_representative([r.team_name for r in records], PickRule.MOST_FREQUENT)
    team_id = pick_representative(
        [r.team_id for r in records if team_name is None or r.team_name == team_name],
        PickRule.MOST_FREQUENT,
    )

    weighted: Dict[str, Optional[float]] = {}
    if any(record.avg_pitch_velocity is not None for record in records):
        weighted["avg_pitch_velocity"] = _weighted_mean(records)

    return SeasonAggregate(
        subject_id=subject_id,
        season=season,
        games=_count_games(records),
        totals=totals,
        available=frozenset(available),
        subject_name=pick_representative(
            [r.subject_name for r in records], PickRule.MOST_RECENT, recency=recency
        ),
        team_id=team_id,
        team_name=team_name,
        primary_pitch_type=pick_representative([r.pitch_type for r in records], PickRule.MOST_FREQUENT),
        weighted=weighted,
    )


def aggregate(records: Iterable[GameStatRecord], *, by_season: bool = True) -> List[SeasonAggregate]:
    """Group records by subject (and season) and roll them up.

    Additive counters are summed; representative fields are picked. Records with
    a missing subject or season are skipped. Output follows first-seen subject
    order, seasons ascending within a subject.
    """
    partitions: Dict[Tuple[str, Optional[int]], List[GameStatRecord]] = {}
    subject_order: Dict[str, int] = {}
    skipped = 0
    for record in records:
        if not _valid_key(record):
            skipped += 1
            continue
        key = (record.subject_id, record.season if by_season else None)
        subject_order.setdefault(record.subject_id, len(subject_order))
        partitions.setdefault(key, []).append(record)
    if skipped:
        logger.debug("Skipped %s records without a subject/season key", skipped)

    ordered = sorted(partitions.items(), key=lambda item: (subject_order[item[0][0]], item[0][1] or 0))
    return [_build(subject_id, season, group) for (subject_id, season), group in ordered]


def aggregate_career(records: Iterable[GameStatRecord]) -> List[SeasonAggregate]:
    return aggregate(records, by_season=False)


def season_label(agg: SeasonAggregate) -> Any:
    return CAREER if agg.is_career else agg.season
