"""
Batch pin import from an uploaded CSV.

Responsibilities:
- encoding detection + decoding (BOM stripped)
- newline normalization
- delimiter detection
- code resolution per row (code, then keyword, then pin)
- writing one profile document per resolvable row
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from charset_normalizer import from_bytes
from pydantic import ValidationError

from .models import ImportReport
from .rules import CODE_COLUMNS, IMPORT_DELIMITERS
from .store import ProfileStore

logger = logging.getLogger(__name__)


@dataclass
class ParsedUpload:
    rows: List[Dict[str, str]] = field(default_factory=list)
    encoding: Optional[str] = None
    delimiter: str = ","


def decode_upload(raw: bytes) -> Tuple[str, Optional[str]]:
    """
    Decode uploaded bytes to text.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - A UTF-8 BOM is consumed, never carried into the first header.
    - If the detected encoding fails, retry UTF-8, then decode with
      replacement characters so the import can still proceed.
    """
    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and decode_used.lower().replace("-", "_") in ("utf_8", "utf8", "utf_8_sig"):
        decode_used = "utf-8-sig"

    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        try:
            text = raw.decode("utf-8-sig")
            decode_used = "utf-8-sig"
        except UnicodeDecodeError:
            logger.warning("Upload is not valid %s; decoding with replacement", decode_used)
            text = raw.decode("utf-8", errors="replace")
            decode_used = "utf-8"

    return text.lstrip("\ufeff"), decode_used


def parse_upload(raw: bytes) -> ParsedUpload:
    text, encoding = decode_upload(raw)

    # CRLF/CR -> LF
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    delimiter = ","
    sample = text[:4096]
    if sample.strip():
        try:
            delimiter = csv.Sniffer().sniff(sample, delimiters=IMPORT_DELIMITERS).delimiter
        except csv.Error:
            delimiter = ","

    reader = csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter)
    rows = []
    for row in reader:
        rows.append(
            {
                key.strip(): value
                for key, value in row.items()
                if key is not None and value is not None
            }
        )

    return ParsedUpload(rows=rows, encoding=encoding, delimiter=delimiter)


def resolve_code(row: Dict[str, str]) -> Optional[str]:
    for column in CODE_COLUMNS:
        value = (row.get(column) or "").strip()
        if value:
            return value
    return None


def import_pins(
    raw: bytes,
    store: ProfileStore,
    now: Optional[datetime] = None,
) -> ImportReport:
    """
    Create (or overwrite) one profile per CSV row.

    Rows without a code, keyword or pin column value, and rows that do not
    form a valid profile, are skipped and reported by their 1-based data row
    number.
    """
    parsed = parse_upload(raw)
    created_at = now or datetime.now(timezone.utc)
    report = ImportReport(encoding=parsed.encoding, delimiter=parsed.delimiter)

    for i, row in enumerate(parsed.rows, start=1):
        code = resolve_code(row)
        if code is None:
            report.skipped_rows.append(i)
            continue

        try:
            store.put(code, {**row, "code": code, "createdAt": created_at})
        except ValidationError as e:
            logger.warning("Skipping row %d (%s): %d invalid fields", i, code, e.error_count())
            report.skipped_rows.append(i)
            continue
        report.created.append(code)

    logger.info(
        "Batch import created %d profiles, skipped %d rows",
        len(report.created),
        len(report.skipped_rows),
    )
    return report
