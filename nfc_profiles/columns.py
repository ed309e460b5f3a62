"""
Column schemas for profile exports.

A schema is an ordered, non-empty list of (header label, extraction rule)
pairs. The three admin exports are configurations of the same schema type.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple

from .extract import (
    Extractor,
    claimed_status,
    counter_field,
    text_field,
    timestamp_field,
)
from .models import ProfileRecord
from .rules import DEFAULT_TIMESTAMP_FORMAT


@dataclass(frozen=True)
class Column:
    label: str
    extract: Extractor


class ColumnSchema:
    def __init__(self, columns: Iterable[Column]):
        self.columns: Tuple[Column, ...] = tuple(columns)
        if not self.columns:
            raise ValueError("Column schema must contain at least one column")

    @classmethod
    def of(cls, *pairs: Tuple[str, Extractor]) -> "ColumnSchema":
        return cls(Column(label, extract) for label, extract in pairs)

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[Column]:
        return iter(self.columns)

    @property
    def labels(self) -> List[str]:
        return [column.label for column in self.columns]

    def row(self, record: ProfileRecord) -> List[str]:
        return [column.extract(record) for column in self.columns]


def claimed_pins_schema() -> ColumnSchema:
    return ColumnSchema.of(
        ("Code", text_field("code")),
        ("Claimed", claimed_status),
        ("UID", text_field("uid")),
        ("Name", text_field("name")),
        ("Email", text_field("email")),
        ("Organization", text_field("organization")),
    )


def analytics_schema(fmt: str = DEFAULT_TIMESTAMP_FORMAT) -> ColumnSchema:
    return ColumnSchema(
        list(claimed_pins_schema())
        + [
            Column("Phone", text_field("phone")),
            Column("Role", text_field("role")),
            Column("Last Updated", timestamp_field("lastUpdated", fmt)),
            Column("Viewed At", timestamp_field("viewedAt", fmt)),
        ]
    )


def pins_dashboard_schema(fmt: str = DEFAULT_TIMESTAMP_FORMAT) -> ColumnSchema:
    return ColumnSchema(
        list(claimed_pins_schema())
        + [
            Column("Phone", text_field("phone")),
            Column("Role", text_field("role")),
            Column("Photo", text_field("photo")),
            Column("File", text_field("file")),
            Column("Info", text_field("info")),
            Column("Views", counter_field("viewCount", "views")),
            Column("Downloads", counter_field("downloads")),
            Column("Created", timestamp_field("createdAt", fmt)),
            Column("Last Updated", timestamp_field("lastUpdated", fmt)),
            Column("Viewed At", timestamp_field("viewedAt", fmt)),
        ]
    )


CLAIMED_PINS_SCHEMA = claimed_pins_schema()
ANALYTICS_SCHEMA = analytics_schema()
PINS_DASHBOARD_SCHEMA = pins_dashboard_schema()
