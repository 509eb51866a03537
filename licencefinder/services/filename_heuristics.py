"""
Filename and folder heuristics for licence evidence.

A filename is graded into one of four priority tiers, strongest first:

1. canonical "issued licence" phrases,
2. the wider set of licence-document phrases,
3. "Abstraction Licence" and its common misspellings,
4. the permit number written at the start of the filename.

Names mentioning a letter, schedule or addendum never qualify. Folder tests
look at the folder holding the file (the second-to-last URL path segment).
"""
import re
from typing import Callable, List, Optional, Tuple

from licencefinder.models.extracts import DocumentRecord
from licencefinder.services.normalization import url_path_segments
from licencefinder.services.permit_pattern import contains_permit_number_pattern

EXCLUSION_TERMS = ("letter", "schedule", "addendum")

PRIORITY_1_PHRASES = (
    "Issued Licence",
    "Licence Issued",
    "issue licence",
    "Issued Licece",
    "Issued Licenese",
    "Issued License",
)

PRIORITY_2_PHRASES = (
    "New Signed Licence",
    "Non-Application Licence Document",
    "License Issued",
    "Licence document issued",
    "Licence Document",
    "Application New Licence",
    "Application New License",
    "Application New Licence Issued",
    "Original Licence",
    "Original License",
    "Application New Issued",
    "Original Existing Licence",
)

ABSTRACTION_LICENCE_PATTERN = re.compile(r"abst?r?action\s+licen[cs]e?", re.IGNORECASE)

PERMIT_FOLDER_MARKER = "permit"
APPLICATION_FOLDER_PATTERN = re.compile(r"^application\s*&?\s*associated\s*docs?$", re.IGNORECASE)
LIB_FOLDER_PATTERN = re.compile(r"^lib\d+/?$", re.IGNORECASE)


def _contains_any(file_name: str, phrases) -> bool:
    lowered = file_name.lower()
    return any(phrase.lower() in lowered for phrase in phrases)


def should_exclude_file_name(file_name: Optional[str]) -> bool:
    if not file_name or not file_name.strip():
        return False
    return _contains_any(file_name, EXCLUSION_TERMS)


def is_priority_1_file_name(file_name: Optional[str]) -> bool:
    if not file_name or not file_name.strip() or should_exclude_file_name(file_name):
        return False
    return _contains_any(file_name, PRIORITY_1_PHRASES)


def is_priority_2_file_name(file_name: Optional[str]) -> bool:
    if not file_name or not file_name.strip() or should_exclude_file_name(file_name):
        return False
    return _contains_any(file_name, PRIORITY_2_PHRASES)


def is_priority_3_file_name(file_name: Optional[str]) -> bool:
    if not file_name or not file_name.strip() or should_exclude_file_name(file_name):
        return False
    return ABSTRACTION_LICENCE_PATTERN.search(file_name) is not None


def is_priority_4_file_name(file_name: Optional[str], permit_number: Optional[str]) -> bool:
    if should_exclude_file_name(file_name):
        return False
    return contains_permit_number_pattern(file_name, permit_number)


# The permit-number tier checks the document's own permit number
PRIORITY_TIERS: List[Tuple[int, Callable[[DocumentRecord], bool]]] = [
    (1, lambda document: is_priority_1_file_name(document.file_name)),
    (2, lambda document: is_priority_2_file_name(document.file_name)),
    (3, lambda document: is_priority_3_file_name(document.file_name)),
    (4, lambda document: is_priority_4_file_name(document.file_name, document.permit_number)),
]


def classify_priority_tier(document: DocumentRecord) -> Optional[int]:
    """Strongest tier the document qualifies for, or None."""
    for tier, qualifies in PRIORITY_TIERS:
        if qualifies(document):
            return tier
    return None


def containing_folder(file_url: Optional[str]) -> Optional[str]:
    """Second-to-last path segment of a file URL, or None when the path is too short."""
    segments = url_path_segments(file_url)
    if len(segments) < 2:
        return None
    return segments[-2]


def is_in_permit_documents_folder(file_url: Optional[str]) -> bool:
    folder = containing_folder(file_url)
    if not folder or not folder.strip():
        return False
    return PERMIT_FOLDER_MARKER in folder.lower()


def is_in_application_folder(file_url: Optional[str]) -> bool:
    """True for "Application & Associated Docs" folders and LIBn library folders."""
    folder = containing_folder(file_url)
    if not folder or not folder.strip():
        return False
    folder = folder.strip()
    return bool(APPLICATION_FOLDER_PATTERN.match(folder) or LIB_FOLDER_PATTERN.match(folder))
