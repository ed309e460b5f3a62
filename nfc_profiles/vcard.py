"""
vCard rendering for the public profile page.
"""

from __future__ import annotations

import re
from typing import Optional

from .models import ProfileRecord

_ALLOWED_SCHEME = re.compile(r"^(https?:|mailto:|tel:)", re.IGNORECASE)


def normalize_url(raw: Optional[str]) -> str:
    """Prefix ``https://`` unless the value already carries an allowed scheme."""
    if not raw:
        return ""
    s = raw.strip()
    if _ALLOWED_SCHEME.match(s):
        return s
    return "https://" + s.lstrip("/")


def build_vcard(record: ProfileRecord, profile_url: str) -> str:
    first = record.first_name or ""
    last = record.last_name or ""
    org = record.org or record.company or ""

    notes = [
        f"{label}: {value}"
        for label, value in (
            ("Website", record.website),
            ("LinkedIn", record.linkedin),
            ("Twitter", record.twitter),
            ("Instagram", record.instagram),
        )
        if value
    ]

    lines = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        f"N:{last};{first}",
        "FN:" + " ".join(part for part in (first, last) if part),
        f"EMAIL:{record.email or ''}",
        f"TEL:{record.phone or ''}",
        f"ORG:{org}",
        f"TITLE:{record.title or ''}",
        f"URL:{profile_url}",
        "NOTE:" + "\\n".join(notes),
        "END:VCARD",
    ]
    return "\r\n".join(lines)
