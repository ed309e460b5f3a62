"""
Tabular export of profile records.

Rules (fixed):
- header row first, then one row per record in input order
- every cell double-quoted, embedded quotes doubled
- comma separated, LF between rows, no trailing newline
- UTF-8 bytes handed to a delivery callable exactly once
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Any, Callable, Iterable

from .columns import ColumnSchema
from .models import ProfileRecord
from .rules import CSV_DELIMITER, CSV_ENCODING, CSV_LINE_TERMINATOR, CSV_MEDIA_TYPE

logger = logging.getLogger(__name__)

# deliver(payload, media_type, filename)
Deliver = Callable[[bytes, str, str], Any]


def render_csv(records: Iterable[ProfileRecord], schema: ColumnSchema) -> str:
    outp = io.StringIO(newline="")
    writer = csv.writer(
        outp,
        delimiter=CSV_DELIMITER,
        quoting=csv.QUOTE_ALL,
        lineterminator=CSV_LINE_TERMINATOR,
    )

    writer.writerow(schema.labels)
    for record in records:
        writer.writerow(schema.row(record))

    text = outp.getvalue()
    return text[: -len(CSV_LINE_TERMINATOR)]


def export_csv(
    records: Iterable[ProfileRecord],
    schema: ColumnSchema,
    filename: str,
    deliver: Deliver,
) -> None:
    """
    Render ``records`` with ``schema`` and hand the document to ``deliver``.

    Errors raised by ``deliver`` propagate to the caller; nothing is retried.
    """
    records = list(records)
    payload = render_csv(records, schema).encode(CSV_ENCODING)
    logger.info(
        "Exporting %d records (%d columns) to %s", len(records), len(schema), filename
    )
    deliver(payload, CSV_MEDIA_TYPE, filename)
