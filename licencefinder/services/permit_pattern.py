"""
Recognises a permit number written at the start of a filename.

DMS files are named by hand, so permit 22717129 turns up as "22717129.pdf",
"2271 7129.pdf", "2-27-17-129 Licence.pdf" and so on. Every strategy anchors
the permit at the start of the name and accepts what follows only when it is
digits and whitespace (a copy counter) with an optional ".pdf" extension.
Segmented names alone may also end in a "Licence" descriptor.

Strategies run strictest first; the first one that accepts wins.
"""
import re
from enum import Enum
from functools import lru_cache
from typing import List, Optional, Pattern, Tuple

SEPARATOR_CLASS = r"[\-_/\\\s]"
MIN_SEGMENTED_LENGTH = 6
MIN_PAIRED_SEGMENTED_LENGTH = 8
MIN_CHUNK_LENGTH = 4
EDGE_CHUNK_LENGTH = 6

_PDF_SUFFIX = re.compile(r"\.pdf$", re.IGNORECASE)
_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")
_DIGITS = re.compile(r"^\d*$")
_DIGITS_AND_SPACES = re.compile(r"^[\s\d]*$")
# Segmented strategy only: "2-27-17-129 Licence.pdf" matches while
# "22717129 Licence.pdf" and "2271-7129 Licence.pdf" do not
_DIGITS_SPACES_AND_DESCRIPTOR = re.compile(r"^[\s\d]*(?:[\s\-_]*licen[cs]e)?\s*$", re.IGNORECASE)


class PermitPatternStrategy(str, Enum):
    EXACT = "exact"
    SEPARATED = "separated"
    SEGMENTED = "segmented"
    PARTIAL = "partial"
    FLEXIBLE = "flexible"


def _strip_pdf_suffix(text: str) -> str:
    return _PDF_SUFFIX.sub("", text)


def _alphanumeric(text: str) -> str:
    return _NON_ALPHANUMERIC.sub("", text)


def segmented_groupings(permit_number: str) -> List[List[str]]:
    """
    Candidate ways a permit number is split into numeric groups.

    Every permit of six or more characters can be written one character per
    group. From eight characters on, a leading group of one to three
    characters followed by pairs is tried as well, with an odd trailing
    character either kept on its own or joined to the last pair.
    """
    if len(permit_number) < MIN_SEGMENTED_LENGTH:
        return []

    groupings = [list(permit_number)]
    if len(permit_number) >= MIN_PAIRED_SEGMENTED_LENGTH:
        for first_length in (1, 2, 3):
            head, rest = permit_number[:first_length], permit_number[first_length:]
            pairs = [rest[i:i + 2] for i in range(0, len(rest), 2)]
            groupings.append([head] + pairs)
            if len(pairs) > 1 and len(pairs[-1]) == 1:
                groupings.append([head] + pairs[:-2] + [pairs[-2] + pairs[-1]])

    unique = []
    for grouping in groupings:
        if len(grouping) > 1 and grouping not in unique:
            unique.append(grouping)
    return unique


def permit_number_chunks(permit_number: str) -> List[str]:
    """Significant pieces of a permit number used for partial matching."""
    chunks = re.findall(r"\d{4,}", permit_number)
    chunks += re.findall(r"[A-Za-z0-9]{4,}", permit_number)
    if len(permit_number) >= EDGE_CHUNK_LENGTH:
        chunks.append(permit_number[-EDGE_CHUNK_LENGTH:])
        chunks.append(permit_number[:EDGE_CHUNK_LENGTH])

    unique = []
    for chunk in chunks:
        if chunk not in unique:
            unique.append(chunk)
    return unique


@lru_cache(maxsize=4096)
def _compiled_patterns(permit_number: str) -> Tuple[Pattern, Tuple[Pattern, ...], Pattern]:
    characters = [re.escape(character) for character in permit_number]
    separated = re.compile("^" + (SEPARATOR_CLASS + "*").join(characters), re.IGNORECASE)
    segmented = tuple(
        re.compile(
            "^" + (SEPARATOR_CLASS + "+").join(re.escape(group) for group in grouping),
            re.IGNORECASE,
        )
        for grouping in segmented_groupings(permit_number)
    )
    flexible = re.compile("^" + "[^A-Za-z0-9]*".join(characters), re.IGNORECASE)
    return separated, segmented, flexible


def _remainder_after(pattern: Pattern, file_name: str) -> Optional[str]:
    match = pattern.match(file_name)
    if match is None:
        return None
    return _strip_pdf_suffix(file_name[match.end():])


def match_permit_number_strategy(
    file_name: Optional[str],
    permit_number: Optional[str],
) -> Optional[PermitPatternStrategy]:
    """Return the first strategy that finds the permit at the start of the filename."""
    if not file_name or not file_name.strip() or not permit_number or not permit_number.strip():
        return None

    permit_number = permit_number.strip()
    file_name = file_name.strip()
    clean_file_name = _alphanumeric(_strip_pdf_suffix(file_name)).lower()
    clean_permit = _alphanumeric(permit_number).lower()

    if clean_permit and clean_file_name.startswith(clean_permit):
        if _DIGITS.match(clean_file_name[len(clean_permit):]):
            return PermitPatternStrategy.EXACT

    separated, segmented, flexible = _compiled_patterns(permit_number)

    remainder = _remainder_after(separated, file_name)
    if remainder is not None and _DIGITS_AND_SPACES.match(remainder):
        return PermitPatternStrategy.SEPARATED

    for pattern in segmented:
        remainder = _remainder_after(pattern, file_name)
        if remainder is not None and _DIGITS_SPACES_AND_DESCRIPTOR.match(remainder):
            return PermitPatternStrategy.SEGMENTED

    if len(permit_number) >= EDGE_CHUNK_LENGTH:
        for chunk in permit_number_chunks(permit_number):
            chunk = chunk.lower()
            if len(chunk) < MIN_CHUNK_LENGTH or not clean_file_name.startswith(chunk):
                continue
            if _DIGITS.match(clean_file_name[len(chunk):]):
                return PermitPatternStrategy.PARTIAL

    remainder = _remainder_after(flexible, file_name)
    if remainder is not None and _DIGITS_AND_SPACES.match(remainder):
        return PermitPatternStrategy.FLEXIBLE

    return None


def contains_permit_number_pattern(file_name: Optional[str], permit_number: Optional[str]) -> bool:
    return match_permit_number_strategy(file_name, permit_number) is not None
