"""Request-level stats operations: fetch, roll up, derive, rank, format."""
from __future__ import annotations

from textwrap import dedent
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from backend.app.core.config import Settings, settings as default_settings
from backend.app.core.logging import logger
from backend.app.stats.aggregation import SeasonAggregate, aggregate, aggregate_career
from backend.app.stats.formatting import format_record
from backend.app.stats.formulas import with_metrics
from backend.app.stats.ranking import RANKED_METRICS, RankedMetric, rank_cohort
from backend.app.stats.records import GameStatRecord, ResolvedFields, resolve_fields, to_records
from backend.app.stats.schema import SchemaResolver
from backend.app.stats.selectors import SubjectType, fact_table, parse_season, parse_subject_type
from backend.app.stats.warehouse import QueryRunner, quote_identifier, select_list

Rankings = Dict[str, Dict[str, RankedMetric]]

DEFAULT_ORDER_BY = {
    SubjectType.BATTING: "ops",
    SubjectType.PITCHING: "era",
    SubjectType.TEAM: "win_pct",
}

_TEAM_LIST_FIELDS = {
    "team_id": ("team_id",),
    "team_name": ("team_name",),
    "team_abbr": ("team_abbr", "team_abbrev", "abbreviation"),
    "season": ("season", "season_year", "year"),
}


def build_fact_query(runner: QueryRunner, fields: ResolvedFields, filters: Mapping[str, str]) -> str:
    """SELECT the resolved columns of a fact table.

    ``filters`` maps a bind parameter name to the column it must equal.
    """
    where = [f"{quote_identifier(runner, column)} = :{param}" for param, column in filters.items()]
    # Chronological order makes first-seen tie-breaks in the aggregator deterministic.
    order = [column for column in (fields.season, fields.game_date, fields.game_id) if column is not None]
    return dedent(
        f"""
        SELECT {select_list(runner, fields.selected_columns())}
        FROM {quote_identifier(runner, fields.table)}
        WHERE {" AND ".join(where) if where else "1 = 1"}
        ORDER BY {select_list(runner, order)}
        """
    ).strip()


def _rank_sort_key(rankings: Rankings, metric: str) -> Callable[[SeasonAggregate], tuple]:
    """Best rank first, unranked subjects last, then by name for a stable order."""

    def key(agg: SeasonAggregate) -> tuple:
        placed = rankings.get(agg.subject_id, {}).get(metric)
        position = placed.rank if placed is not None else None
        return (position is None, position or 0, agg.subject_name or "", agg.subject_id)

    return key


class StatsService:
    def __init__(
        self,
        warehouse: QueryRunner,
        resolver: Optional[SchemaResolver] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.warehouse = warehouse
        self.resolver = resolver or SchemaResolver(warehouse.list_columns)
        self.settings = settings or default_settings

    def _records(
        self,
        subject_type: SubjectType,
        *,
        subject_id: Optional[str] = None,
        season: Optional[int] = None,
    ) -> List[GameStatRecord]:
        table = fact_table(subject_type, self.settings)
        fields = resolve_fields(self.resolver, table, subject_type)
        if not fields.is_usable:
            logger.warning("Table %s has no usable subject/season columns; returning no rows", table)
            return []

        filters: Dict[str, str] = {}
        params: Dict[str, Any] = {}
        if subject_id is not None:
            filters["subject_id"] = fields.subject_id
            params["subject_id"] = subject_id
        if season is not None:
            filters["season"] = fields.season
            params["season"] = season

        rows = self.warehouse.run_query(build_fact_query(self.warehouse, fields, filters), params)
        return to_records(rows, fields)

    def _qualifier(
        self,
        subject_type: SubjectType,
        *,
        min_at_bats: Optional[int] = None,
        min_innings: Optional[float] = None,
    ) -> Callable[[SeasonAggregate], bool]:
        """Cohort qualification; explicit minimums override the configured ones."""
        cfg = self.settings
        if subject_type is SubjectType.BATTING:
            at_bats = cfg.qualify_min_at_bats if min_at_bats is None else min_at_bats
            return lambda agg: (agg.total("at_bats") or 0) >= at_bats
        if subject_type is SubjectType.PITCHING:
            innings = cfg.qualify_min_innings if min_innings is None else min_innings
            return lambda agg: (agg.total("innings_pitched") or 0) >= innings
        return lambda agg: agg.games >= cfg.qualify_min_team_games

    def _rolled_up(
        self, records: Sequence[GameStatRecord], subject_type: SubjectType, *, career: bool
    ) -> List[SeasonAggregate]:
        aggs = aggregate_career(records) if career else aggregate(records)
        return [with_metrics(agg, subject_type) for agg in aggs]

    def _cohort(
        self,
        subject_type: SubjectType,
        season: Optional[int],
        qualifies: Optional[Callable[[SeasonAggregate], bool]] = None,
    ) -> Tuple[List[SeasonAggregate], Rankings]:
        """Every subject of the season (or career, when ``season`` is None), ranked."""
        records = self._records(subject_type, season=season)
        cohort = self._rolled_up(records, subject_type, career=season is None)
        rankings = rank_cohort(cohort, RANKED_METRICS[subject_type], qualifies or self._qualifier(subject_type))
        return cohort, rankings

    def _rankings_by_season(
        self, subject_type: SubjectType, seasons: Iterable[Optional[int]]
    ) -> Dict[Optional[int], Rankings]:
        """Cohort rankings for each requested season (None is the career cohort) from one fetch."""
        wanted = set(seasons)
        if not wanted:
            return {}
        if len(wanted) == 1:
            (season,) = wanted
            _, rankings = self._cohort(subject_type, season)
            return {season: rankings}

        by_season: Dict[Optional[int], List[SeasonAggregate]] = {season: [] for season in wanted}
        for agg in self._rolled_up(self._records(subject_type), subject_type, career=False):
            if agg.season in by_season:
                by_season[agg.season].append(agg)
        tracked = RANKED_METRICS[subject_type]
        qualifies = self._qualifier(subject_type)
        return {season: rank_cohort(cohort, tracked, qualifies) for season, cohort in by_season.items()}

    def _format_all(
        self, aggs: Sequence[SeasonAggregate], subject_type: SubjectType, with_ranks: bool
    ) -> List[Dict[str, Any]]:
        tracked = tuple(RANKED_METRICS[subject_type]) if with_ranks else ()
        by_season = self._rankings_by_season(subject_type, (agg.season for agg in aggs)) if with_ranks else {}
        formatted: List[Dict[str, Any]] = []
        for agg in aggs:
            placed: Optional[Mapping[str, RankedMetric]] = None
            if with_ranks:
                placed = by_season[agg.season].get(agg.subject_id)
            formatted.append(format_record(agg, subject_type, placed, tracked))
        return formatted

    def player_stats(
        self,
        player_id: Union[str, int],
        stat_type: Union[str, SubjectType],
        season: Union[str, int, None] = None,
        *,
        with_ranks: bool = False,
    ) -> List[Dict[str, Any]]:
        """A player's line for one season, or the career line; empty when the player has no rows."""
        subject_type = parse_subject_type(stat_type)
        selected = parse_season(season)
        records = self._records(subject_type, subject_id=str(player_id), season=selected)
        aggs = self._rolled_up(records, subject_type, career=selected is None)
        return self._format_all(aggs, subject_type, with_ranks)

    def player_season_history(
        self,
        player_id: Union[str, int],
        stat_type: Union[str, SubjectType],
        *,
        with_ranks: bool = False,
    ) -> List[Dict[str, Any]]:
        """One line per season the player appears in, seasons ascending."""
        subject_type = parse_subject_type(stat_type)
        records = self._records(subject_type, subject_id=str(player_id))
        aggs = self._rolled_up(records, subject_type, career=False)
        return self._format_all(aggs, subject_type, with_ranks)

    def leaderboard(
        self,
        stat_type: Union[str, SubjectType],
        season: Union[str, int, None] = None,
        *,
        order_by: Optional[str] = None,
        limit: Optional[int] = None,
        team_id: Optional[str] = None,
        min_at_bats: Optional[int] = None,
        min_innings: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """Season (or career) cohort view ranked on every tracked metric.

        Ranks are computed against the whole league cohort; ``team_id`` only
        narrows which ranked rows are returned. ``min_at_bats`` / ``min_innings``
        override the configured qualification minimums for this request.
        """
        subject_type = parse_subject_type(stat_type)
        selected = parse_season(season)
        tracked = RANKED_METRICS[subject_type]
        order_metric = (order_by or DEFAULT_ORDER_BY[subject_type]).strip().lower()
        if order_metric not in tracked:
            raise ValueError(f"Unsupported order_by metric: {order_by!r}")

        for name, minimum in (("min_at_bats", min_at_bats), ("min_innings", min_innings)):
            if minimum is not None and minimum < 0:
                raise ValueError(f"{name} must be non-negative, got {minimum!r}")

        qualifies = self._qualifier(subject_type, min_at_bats=min_at_bats, min_innings=min_innings)
        cohort, rankings = self._cohort(subject_type, selected, qualifies)
        if team_id is not None:
            cohort = [agg for agg in cohort if agg.team_id == str(team_id)]

        ordered = sorted(cohort, key=_rank_sort_key(rankings, order_metric))
        size = self.settings.leaderboard_default_limit if limit is None else max(0, int(limit))
        return [
            format_record(agg, subject_type, rankings[agg.subject_id], tuple(tracked))
            for agg in ordered[:size]
        ]

    def team_seasons(self, season: Union[str, int, None] = None) -> List[Dict[str, Any]]:
        """Team+season rollups with run differential, ranked within each season.

        A career selector returns every season, each ranked against its own season.
        """
        selected = parse_season(season)
        records = self._records(SubjectType.TEAM, season=selected)
        aggs = self._rolled_up(records, SubjectType.TEAM, career=False)
        tracked = RANKED_METRICS[SubjectType.TEAM]
        qualifies = self._qualifier(SubjectType.TEAM)

        by_season: Dict[int, List[SeasonAggregate]] = {}
        for agg in aggs:
            by_season.setdefault(agg.season, []).append(agg)

        formatted: List[Dict[str, Any]] = []
        for year in sorted(by_season):
            rankings = rank_cohort(by_season[year], tracked, qualifies)
            for agg in sorted(by_season[year], key=_rank_sort_key(rankings, DEFAULT_ORDER_BY[SubjectType.TEAM])):
                formatted.append(format_record(agg, SubjectType.TEAM, rankings[agg.subject_id], tuple(tracked)))
        return formatted

    def list_teams(self, season: Union[str, int, None] = None) -> List[Dict[str, Any]]:
        """Distinct teams (id, name, abbreviation, season) ordered by name."""
        table = self.settings.table_name(self.settings.teams_table)
        columns = self.resolver.resolve_many(table, _TEAM_LIST_FIELDS)
        if columns["team_id"] is None or columns["team_name"] is None:
            logger.warning("Table %s has no team id/name columns", table)
            return []

        def q(identifier: str) -> str:
            return quote_identifier(self.warehouse, identifier)

        selected = parse_season(season)
        select_sql = ", ".join(f"{q(column)} AS {q(name)}" for name, column in columns.items() if column is not None)
        where_sql = "1 = 1"
        params: Dict[str, Any] = {}
        if selected is not None and columns["season"] is not None:
            where_sql = f"{q(columns['season'])} = :season"
            params["season"] = selected
        query = dedent(
            f"""
            SELECT DISTINCT {select_sql}
            FROM {q(table)}
            WHERE {where_sql}
            ORDER BY {q(columns['team_name'])}
            """
        ).strip()
        rows = self.warehouse.run_query(query, params)
        return [{name: row.get(name) for name in _TEAM_LIST_FIELDS} for row in rows]
