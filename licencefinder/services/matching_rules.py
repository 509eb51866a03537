"""
Matching rules and the rule chain.

The six rules differ only in where they take candidates from and which
folder the candidate must sit in. Each is a MatchingRule value; finding a
match is pure and returns a RuleMatch describing the winning document, the
label to report and whether the winning tier had same-date duplicates.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional

from licencefinder.models.extracts import DocumentRecord, LicenceRecord
from licencefinder.services.candidate_index import CandidateIndex
from licencefinder.services.document_selection import select_latest_document
from licencefinder.services.errors import InputContractError
from licencefinder.services.filename_heuristics import (
    PRIORITY_TIERS,
    is_in_application_folder,
    is_in_permit_documents_folder,
)

logger = logging.getLogger(__name__)

FolderFilter = Callable[[str], bool]

PERMIT_DOCUMENTS_RULE = "Found In Permit Documents Folder"
APPLICATION_OR_ROOT_RULE = "Found In Application Or Root Folder"
NON_PRIMARY_FOLDER_RULE = "Found In Non-Primary Folder"
MANUAL_PERMIT_DOCUMENTS_RULE = "Manual Folder Match Fix - In Permit Documents Folder"
MANUAL_APPLICATION_OR_ROOT_RULE = "Manual Folder Match Fix - In Application Or Root Folder"
MANUAL_NON_PRIMARY_FOLDER_RULE = "Manual Folder Match Fix - In Non-Primary Folder"


class CandidateSource(str, Enum):
    PERMIT_NUMBER = "permit_number"
    MANUAL_FIX = "manual_fix"


@dataclass(frozen=True)
class RuleMatch:
    document: DocumentRecord
    label: str
    has_duplicate: bool
    rule_name: str
    rule_priority: int
    tier: int
    candidate_count: int


def resolve_priority_tiers(
    candidates: List[DocumentRecord],
    rule_name: str,
    rule_priority: int = 0,
) -> Optional[RuleMatch]:
    """
    Grade candidates by filename tier and pick the latest in the strongest tier.

    Only the first tier with any qualifying candidate is considered.
    """
    for tier, qualifies in PRIORITY_TIERS:
        tier_candidates = [document for document in candidates if qualifies(document)]
        if not tier_candidates:
            continue

        document, has_duplicate = select_latest_document(tier_candidates)
        if has_duplicate:
            label = f"{rule_name} - Multiple Matches"
        else:
            label = f"{rule_name} - Priority {tier}"
        return RuleMatch(
            document=document,
            label=label,
            has_duplicate=has_duplicate,
            rule_name=rule_name,
            rule_priority=rule_priority,
            tier=tier,
            candidate_count=len(tier_candidates),
        )
    return None


@dataclass(frozen=True)
class MatchingRule:
    name: str
    priority: int
    source: CandidateSource
    folder_filter: Optional[FolderFilter] = None

    def select_candidates(self, permit_number: str, index: CandidateIndex) -> List[DocumentRecord]:
        if self.source == CandidateSource.MANUAL_FIX:
            candidates = index.manual_fix_documents_for_permit(permit_number)
        else:
            candidates = index.documents_for_permit(permit_number)
        if self.folder_filter is None:
            return candidates
        return [document for document in candidates if self.folder_filter(document.file_url)]

    def find_match(self, licence: LicenceRecord, index: CandidateIndex) -> Optional[RuleMatch]:
        if not licence.licence_number.strip() or not licence.permit_number.strip():
            return None
        candidates = self.select_candidates(licence.permit_number, index)
        if not candidates:
            return None
        return resolve_priority_tiers(candidates, self.name, self.priority)


def default_rules() -> List[MatchingRule]:
    return [
        MatchingRule(PERMIT_DOCUMENTS_RULE, 1, CandidateSource.PERMIT_NUMBER, is_in_permit_documents_folder),
        MatchingRule(APPLICATION_OR_ROOT_RULE, 2, CandidateSource.PERMIT_NUMBER, is_in_application_folder),
        MatchingRule(NON_PRIMARY_FOLDER_RULE, 3, CandidateSource.PERMIT_NUMBER),
        MatchingRule(MANUAL_PERMIT_DOCUMENTS_RULE, 4, CandidateSource.MANUAL_FIX, is_in_permit_documents_folder),
        MatchingRule(MANUAL_APPLICATION_OR_ROOT_RULE, 5, CandidateSource.MANUAL_FIX, is_in_application_folder),
        MatchingRule(MANUAL_NON_PRIMARY_FOLDER_RULE, 6, CandidateSource.MANUAL_FIX),
    ]


class RuleChain:
    """Runs rules in ascending priority; the first rule to match wins."""

    def __init__(self, rules: Iterable[MatchingRule]):
        if rules is None:
            raise InputContractError("rules", "At least one matching rule must be provided")
        rules = list(rules)
        if not rules:
            raise InputContractError("rules", "At least one matching rule must be provided")

        priorities = [rule.priority for rule in rules]
        duplicated = sorted({priority for priority in priorities if priorities.count(priority) > 1})
        if duplicated:
            raise InputContractError(
                "rules",
                f"Rule priorities must be unique, duplicated: {', '.join(str(p) for p in duplicated)}",
            )
        self.rules = sorted(rules, key=lambda rule: rule.priority)

    def resolve(self, licence: LicenceRecord, index: CandidateIndex) -> Optional[RuleMatch]:
        for rule in self.rules:
            match = rule.find_match(licence, index)
            if match is not None:
                logger.debug("Licence %s matched by %s", licence.licence_number, match.label)
                return match
        return None
