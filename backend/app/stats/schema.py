"""Schema-adaptive column resolution with a process-wide cache.

Upstream tables rename, add and drop columns between versions. Callers ask for a
logical column by an ordered list of candidate names and get back whichever one
the table currently exposes, or ``None`` when none of them exist.

The cache is a plain dict shared by every resolver that does not bring its own.
Concurrent first lookups for the same key may each list the table's columns and
write the same answer; that race is harmless and left unguarded.
"""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Tuple

from backend.app.core.logging import logger

CacheKey = Tuple[str, Tuple[str, ...]]

# (table, candidates) -> resolved column name, or None when no candidate exists.
_COLUMN_CACHE: Dict[CacheKey, Optional[str]] = {}


def clear_column_cache() -> None:
    _COLUMN_CACHE.clear()


class SchemaResolver:
    def __init__(
        self,
        list_columns: Callable[[str], Iterable[str]],
        cache: Optional[MutableMapping[CacheKey, Optional[str]]] = None,
    ) -> None:
        self._list_columns = list_columns
        self._cache = cache if cache is not None else _COLUMN_CACHE

    def _table_columns(self, table: str, listings: Optional[Dict[str, List[str]]] = None) -> List[str]:
        """List a table's columns once per ``listings`` pass; [] when the listing fails or is empty."""
        if listings is not None and table in listings:
            return listings[table]
        try:
            columns = [str(col) for col in (self._list_columns(table) or [])]
        except Exception as exc:  # noqa: BLE001
            logger.warning("Column listing failed for %s: %s", table, exc)
            columns = []
        else:
            if not columns:
                logger.warning("Column listing for %s returned no columns", table)
        if listings is not None:
            listings[table] = columns
        return columns

    def resolve_column(
        self,
        table: str,
        candidates: Iterable[str],
        listings: Optional[Dict[str, List[str]]] = None,
    ) -> Optional[str]:
        """Return the first candidate present in ``table`` (as the table spells it), else None.

        Column listing failures and empty listings resolve to None and are not
        cached, so a later call retries. ``listings`` shares one column listing
        per table across several lookups.
        """
        candidates = tuple(candidates)
        if not candidates:
            raise ValueError("candidates must be a non-empty list of column names")
        key: CacheKey = (table, candidates)
        if key in self._cache:
            return self._cache[key]

        columns = self._table_columns(table, listings)
        if not columns:
            return None

        lookup = {col.lower(): col for col in columns}
        resolved = None
        for candidate in candidates:
            match = lookup.get(candidate.lower())
            if match is not None:
                resolved = match
                break
        if resolved is None:
            logger.info("No column of %s found in %s", list(candidates), table)
        self._cache[key] = resolved
        return resolved

    def resolve_many(
        self, table: str, fields: Mapping[str, Sequence[str]]
    ) -> Dict[str, Optional[str]]:
        """Resolve several logical fields at once: logical name -> column name or None.

        The table's columns are listed at most once for the whole batch.
        """
        listings: Dict[str, List[str]] = {}
        return {name: self.resolve_column(table, candidates, listings) for name, candidates in fields.items()}
