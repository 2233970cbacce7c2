"""Flatten a scrape snapshot into dotted-name text.

Output is one ``<namespace>.<metric>[.<table>] <value>`` line per
metric, newline-terminated, in collection order.  Table names are
written as-is; a name containing a dot or a space produces a line the
consumer cannot split unambiguously.
"""

from __future__ import annotations

from decimal import Decimal

from pg_exporter.models.stats import ScrapeSnapshot

COMMON_EFFECTIVENESS_NS = "postgresql.common_effectiveness"
HIT_MISS_NS = "postgresql.hit_miss"
INDEX_USAGE_NS = "postgresql.index_usage"

# Rendering order of the per-table counters.
COMMON_EFFECTIVENESS_FIELDS = (
    "seq_scan",
    "seq_tup_read",
    "idx_scan",
    "vacuum_full_count",
    "autovacuum_count",
    "analyze_count",
    "autoanalyze_count",
    "avg",
)
HIT_MISS_FIELDS = ("heap_read", "heap_hit", "ratio")
INDEX_USAGE_FIELDS = ("percent_of_times_index_used", "rows_in_table")


def format_value(value: int | Decimal | None) -> str:
    """Render a value exactly as the database reported it.

    Decimals use fixed-point notation so that every digit survives and
    no exponent appears.  NULL becomes ``NaN``.
    """
    if value is None:
        return "NaN"
    if isinstance(value, Decimal):
        if value.is_nan():
            return "NaN"
        return format(value, "f")
    return str(value)


class MetricWriter:
    """Append-only line buffer, joined once in ``getvalue``."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def write(self, name: str, value: int | Decimal | None) -> None:
        self._lines.append(f"{name} {format_value(value)}\n")

    def getvalue(self) -> str:
        return "".join(self._lines)

    def __len__(self) -> int:
        return len(self._lines)


def render(snapshot: ScrapeSnapshot) -> str:
    out = MetricWriter()

    for table in snapshot.common_effectiveness:
        for metric in COMMON_EFFECTIVENESS_FIELDS:
            out.write(
                f"{COMMON_EFFECTIVENESS_NS}.{metric}.{table.relname}",
                getattr(table, metric),
            )

    for cache in snapshot.hit_miss:
        for metric in HIT_MISS_FIELDS:
            out.write(f"{HIT_MISS_NS}.{metric}", getattr(cache, metric))

    for usage in snapshot.index_usage:
        for metric in INDEX_USAGE_FIELDS:
            out.write(
                f"{INDEX_USAGE_NS}.{metric}.{usage.relname}",
                getattr(usage, metric),
            )

    return out.getvalue()
