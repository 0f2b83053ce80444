"""Analytic store access: the two capabilities the stats subsystem consumes.

``run_query`` executes a SQL template with bound parameters and returns plain
dict rows; ``list_columns`` reports the columns a table currently exposes. Both
let SQLAlchemy errors propagate to the caller.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from backend.app.core.logging import logger

Row = Dict[str, Any]


class QueryRunner(Protocol):
    def run_query(self, template: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        ...

    def list_columns(self, table: str) -> List[str]:
        ...


def _split_table(table: str) -> tuple[Optional[str], str]:
    if "." in table:
        schema, name = table.rsplit(".", 1)
        return schema, name
    return None, table


class Warehouse:
    """SQLAlchemy-backed implementation of :class:`QueryRunner`."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def run_query(self, template: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        with self.engine.connect() as conn:
            result = conn.execute(text(template), dict(params or {}))
            rows = [dict(row._mapping) for row in result]
        logger.debug("Query returned %s rows", len(rows))
        return rows

    def list_columns(self, table: str) -> List[str]:
        schema, name = _split_table(table)
        columns = inspect(self.engine).get_columns(name, schema=schema)
        return [col["name"] for col in columns]

    def quote(self, identifier: str) -> str:
        """Quote a table or column name for interpolation into a template."""
        preparer = self.engine.dialect.identifier_preparer
        return ".".join(preparer.quote(part) for part in identifier.split("."))


def quote_identifier(runner: QueryRunner, identifier: str) -> str:
    quote = getattr(runner, "quote", None)
    if callable(quote):
        return quote(identifier)
    return ".".join(f'"{part}"' for part in identifier.split("."))


def select_list(runner: QueryRunner, columns: Sequence[str]) -> str:
    return ", ".join(quote_identifier(runner, col) for col in columns)
