"""
Fixed export and import rules.

Values here are part of the file contract shared with spreadsheet users.
"""

CSV_MEDIA_TYPE = "text/csv;charset=utf-8"
CSV_ENCODING = "utf-8"
CSV_DELIMITER = ","
CSV_LINE_TERMINATOR = "\n"

CLAIMED_YES = "Yes"
CLAIMED_NO = "No"
TIMESTAMP_PLACEHOLDER = "-"

# en-US toLocaleString shape, rendered in UTC
DEFAULT_TIMESTAMP_FORMAT = "%m/%d/%Y, %I:%M:%S %p"

# Batch import: first non-empty column wins
CODE_COLUMNS = ("code", "keyword", "pin")
IMPORT_DELIMITERS = [",", ";", "\t", "|"]

VCARD_MEDIA_TYPE = "text/vcard"

# Profile form fields normalized to absolute URLs on save
PROFILE_LINKS = ("website", "linkedin", "twitter", "instagram")
