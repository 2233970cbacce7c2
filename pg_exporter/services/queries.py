"""The three fixed statistics queries.

All of them read PostgreSQL's cumulative statistics views, so the
numbers are counters since the last ``pg_stat_reset()``.  None take
parameters.  ``columns`` documents the select-list order that the
record types in ``pg_exporter.models.stats`` decode by position.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import TextClause, text


@dataclass(frozen=True)
class StatQuery:
    name: str
    statement: TextClause
    columns: tuple[str, ...]


# idx_scan is NULL for tables without any index; report those as 0 scans.
COMMON_EFFECTIVENESS = StatQuery(
    name="common_effectiveness",
    statement=text(
        """
        SELECT
          relname,
          seq_scan,
          seq_tup_read,
          COALESCE(idx_scan, 0) AS idx_scan,
          vacuum_count,
          autovacuum_count,
          analyze_count,
          autoanalyze_count,
          seq_tup_read / seq_scan AS avg
        FROM
          pg_stat_user_tables
        WHERE
          seq_scan > 0
        ORDER BY
          seq_tup_read DESC
        """
    ),
    columns=(
        "relname",
        "seq_scan",
        "seq_tup_read",
        "idx_scan",
        "vacuum_count",
        "autovacuum_count",
        "analyze_count",
        "autoanalyze_count",
        "avg",
    ),
)

# NULLIF turns the all-zero case into a NULL ratio rather than a
# division-by-zero error that would abort the scrape.
HIT_MISS = StatQuery(
    name="hit_miss",
    statement=text(
        """
        SELECT
          sum(heap_blks_read) AS heap_read,
          sum(heap_blks_hit) AS heap_hit,
          sum(heap_blks_hit)
            / NULLIF(sum(heap_blks_hit) + sum(heap_blks_read), 0) AS ratio
        FROM
          pg_statio_user_tables
        """
    ),
    columns=("heap_read", "heap_hit", "ratio"),
)

INDEX_USAGE = StatQuery(
    name="index_usage",
    statement=text(
        """
        SELECT
          relname,
          100 * idx_scan / (seq_scan + idx_scan) AS percent_of_times_index_used,
          n_live_tup AS rows_in_table
        FROM
          pg_stat_user_tables
        WHERE
          seq_scan + idx_scan > 0
        ORDER BY
          n_live_tup DESC
        """
    ),
    columns=("relname", "percent_of_times_index_used", "rows_in_table"),
)

ALL_QUERIES = (COMMON_EFFECTIVENESS, HIT_MISS, INDEX_USAGE)
