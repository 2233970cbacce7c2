"""Typed records for the three statistics queries.

Rows are decoded by position: the column order of each query's select
list is fixed in ``pg_exporter.services.queries`` and must match the
field order used here.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from pg_exporter.core.errors import DecodeError


def _check_width(record: str, row: Sequence[Any], width: int) -> None:
    if len(row) != width:
        raise DecodeError(
            f"{record}: expected {width} columns, got {len(row)}"
        )


def _text(record: str, row: Sequence[Any], index: int) -> str:
    value = row[index]
    if not isinstance(value, str):
        raise DecodeError(
            f"{record}: column {index} must be text, got {type(value).__name__}",
            column=index,
        )
    return value


def _integer(record: str, row: Sequence[Any], index: int) -> int:
    value = row[index]
    # bool is an int subclass but never a valid counter.
    if not isinstance(value, int) or isinstance(value, bool):
        raise DecodeError(
            f"{record}: column {index} must be an integer, got {type(value).__name__}",
            column=index,
        )
    return value


def _numeric(record: str, row: Sequence[Any], index: int) -> Decimal | None:
    value = row[index]
    if value is None:
        return None
    if not isinstance(value, Decimal):
        raise DecodeError(
            f"{record}: column {index} must be numeric, got {type(value).__name__}",
            column=index,
        )
    return value


@dataclass(frozen=True, slots=True)
class TableEffectiveness:
    relname: str
    seq_scan: int
    seq_tup_read: int
    idx_scan: int
    vacuum_full_count: int
    autovacuum_count: int
    analyze_count: int
    autoanalyze_count: int
    avg: int

    @staticmethod
    def from_row(row: Sequence[Any]) -> TableEffectiveness:
        name = "TableEffectiveness"
        _check_width(name, row, 9)
        return TableEffectiveness(
            relname=_text(name, row, 0),
            seq_scan=_integer(name, row, 1),
            seq_tup_read=_integer(name, row, 2),
            idx_scan=_integer(name, row, 3),
            vacuum_full_count=_integer(name, row, 4),
            autovacuum_count=_integer(name, row, 5),
            analyze_count=_integer(name, row, 6),
            autoanalyze_count=_integer(name, row, 7),
            avg=_integer(name, row, 8),
        )


@dataclass(frozen=True, slots=True)
class CacheHitMiss:
    # NULL when there are no user tables, ratio also NULL when nothing
    # has been read or hit yet.
    heap_read: Decimal | None
    heap_hit: Decimal | None
    ratio: Decimal | None

    @staticmethod
    def from_row(row: Sequence[Any]) -> CacheHitMiss:
        name = "CacheHitMiss"
        _check_width(name, row, 3)
        return CacheHitMiss(
            heap_read=_numeric(name, row, 0),
            heap_hit=_numeric(name, row, 1),
            ratio=_numeric(name, row, 2),
        )


@dataclass(frozen=True, slots=True)
class IndexUsage:
    relname: str
    percent_of_times_index_used: int
    rows_in_table: int

    @staticmethod
    def from_row(row: Sequence[Any]) -> IndexUsage:
        name = "IndexUsage"
        _check_width(name, row, 3)
        return IndexUsage(
            relname=_text(name, row, 0),
            percent_of_times_index_used=_integer(name, row, 1),
            rows_in_table=_integer(name, row, 2),
        )


@dataclass(slots=True)
class ScrapeSnapshot:
    """Everything one request collected, in collection order."""

    common_effectiveness: list[TableEffectiveness] = field(default_factory=list)
    hit_miss: list[CacheHitMiss] = field(default_factory=list)
    index_usage: list[IndexUsage] = field(default_factory=list)
