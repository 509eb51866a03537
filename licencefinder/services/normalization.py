"""
Permit number, date and URL normalisation.

NALD records licence numbers with separators ("6/33/03/*G/0038") while the
DMS files the same permit without them ("633303G0038"). Dates arrive in
whatever format the extract or the OCR pass over the licence produced.
"""
import re
from datetime import datetime
from typing import List, Optional
from urllib.parse import unquote, urlsplit

from dateutil import parser as date_parser

PERMIT_SEPARATORS = ("/", "*")

STANDARD_DATE_FORMAT = "%d/%m/%Y"

# Tried in order before falling back to dateutil
SORTABLE_DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%d/%m/%y",
    "%m/%d/%y",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
)

SCRAPED_DATE_FORMATS = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y-%m-%d",
    "%d %B %Y",
    "%d %b %Y",
    "%d%B%Y",
    "%d%b%Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d/%m/%y",
)

_ORDINAL_WORDS = {
    "first": "1", "second": "2", "third": "3", "fourth": "4", "fifth": "5",
    "sixth": "6", "seventh": "7", "eighth": "8", "ninth": "9", "tenth": "10",
    "eleventh": "11", "twelfth": "12", "thirteenth": "13", "fourteenth": "14",
    "fifteenth": "15", "sixteenth": "16", "seventeenth": "17",
    "eighteenth": "18", "nineteenth": "19", "twentieth": "20",
    "twenty-first": "21", "twenty-second": "22", "twenty-third": "23",
    "twenty-fourth": "24", "twenty-fifth": "25", "twenty-sixth": "26",
    "twenty-seventh": "27", "twenty-eighth": "28", "twenty-ninth": "29",
    "thirtieth": "30", "thirty-first": "31",
}
# Longest first so "twenty-first" is not consumed as "first"
_ORDINAL_WORD_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(word) for word in sorted(_ORDINAL_WORDS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)
_ORDINAL_SUFFIX_PATTERN = re.compile(r"(\d+)(st|nd|rd|th)\b", re.IGNORECASE)
_FILLER_PATTERN = re.compile(r"\b(day\s+of|of|the)\b", re.IGNORECASE)


def clean_permit_number(licence_number: Optional[str]) -> str:
    """
    Derive the permit key from a licence number.

    Blank input gives "". Otherwise every "/" and "*" is removed and nothing
    else changes, so case and internal spacing survive. A value that is blank
    once the separators are gone also gives "", which keeps the function
    idempotent.
    """
    if licence_number is None or not licence_number.strip():
        return ""
    cleaned = licence_number
    for separator in PERMIT_SEPARATORS:
        cleaned = cleaned.replace(separator, "")
    if not cleaned.strip():
        return ""
    return cleaned


def permit_key(permit_number: Optional[str]) -> str:
    """Lookup key for a permit: trimmed and case-folded."""
    return (permit_number or "").strip().casefold()


def parse_sortable_date(value) -> datetime:
    """
    Parse a document or upload date for ordering.

    Anything missing or unparseable sorts as the oldest possible date.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if value is None:
        return datetime.min
    text = str(value).strip()
    if not text:
        return datetime.min

    for fmt in SORTABLE_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    try:
        return date_parser.parse(text, dayfirst=True).replace(tzinfo=None)
    except (ValueError, OverflowError, TypeError):
        return datetime.min


def _tidy_scraped_date(text: str) -> str:
    tidy = _ORDINAL_WORD_PATTERN.sub(lambda m: _ORDINAL_WORDS[m.group(1).lower()], text)
    tidy = _ORDINAL_SUFFIX_PATTERN.sub(r"\1", tidy)
    tidy = _FILLER_PATTERN.sub(" ", tidy)
    tidy = tidy.replace(",", " ").replace(".", " ")
    return re.sub(r"\s+", " ", tidy).strip()


def convert_date_to_standard_format(value: Optional[str]) -> Optional[str]:
    """
    Standardise a scraped or extracted date to dd/mm/yyyy.

    None and blank values pass through unchanged; a value that cannot be
    read as a date becomes "".
    """
    if value is None or not value.strip():
        return value

    text = value.strip()
    for candidate in (text, _tidy_scraped_date(text)):
        for fmt in SCRAPED_DATE_FORMATS:
            try:
                return datetime.strptime(candidate, fmt).strftime(STANDARD_DATE_FORMAT)
            except ValueError:
                continue

    try:
        parsed = date_parser.parse(_tidy_scraped_date(text), dayfirst=True)
    except (ValueError, OverflowError, TypeError):
        return ""
    return parsed.strftime(STANDARD_DATE_FORMAT)


def same_calendar_date(first: Optional[str], second: Optional[str]) -> bool:
    """True when both dates are present and equal once standardised."""
    if not first or not first.strip() or not second or not second.strip():
        return False
    standard_first = convert_date_to_standard_format(first)
    standard_second = convert_date_to_standard_format(second)
    if standard_first and standard_second:
        return standard_first == standard_second
    return first.strip().casefold() == second.strip().casefold()


def url_path_segments(file_url: Optional[str]) -> List[str]:
    """Decoded, non-empty path segments of a file URL (or a bare path)."""
    if not file_url:
        return []
    parts = urlsplit(file_url)
    path = parts.path if parts.scheme and parts.netloc else file_url
    return [unquote(segment) for segment in path.split("/") if segment]


def extract_filename_from_url(file_url: Optional[str]) -> str:
    segments = url_path_segments(file_url)
    return segments[-1] if segments else ""
