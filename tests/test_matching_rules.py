"""
Tests for the matching rules and the rule chain.
"""

import pytest

from licencefinder.models.extracts import DocumentRecord, LicenceRecord, ManualMapping
from licencefinder.services.candidate_index import CandidateIndex
from licencefinder.services.errors import ErrorCode, InputContractError
from licencefinder.services.matching_rules import (
    APPLICATION_OR_ROOT_RULE,
    MANUAL_PERMIT_DOCUMENTS_RULE,
    NON_PRIMARY_FOLDER_RULE,
    PERMIT_DOCUMENTS_RULE,
    CandidateSource,
    MatchingRule,
    RuleChain,
    default_rules,
    resolve_priority_tiers,
)

SITE = "https://ea.sharepoint.com/sites/WaterResources"
PERMIT = "22717129"


def _document(file_name, folder, permit_number=PERMIT, document_date="2020-01-01", file_id=None):
    return DocumentRecord(
        permit_number=permit_number,
        file_id=file_id or f"{folder}/{file_name}",
        file_name=file_name,
        file_url=f"{SITE}/LIB7/{permit_number}/{folder}/{file_name}",
        document_date=document_date,
    )


def _licence(licence_number="2/27/17/129"):
    return LicenceRecord(licence_number=licence_number, region="Anglian")


class TestDefaultRules:
    def test_priorities_and_sources(self):
        rules = default_rules()
        assert [rule.priority for rule in rules] == [1, 2, 3, 4, 5, 6]
        assert [rule.source for rule in rules[:3]] == [CandidateSource.PERMIT_NUMBER] * 3
        assert [rule.source for rule in rules[3:]] == [CandidateSource.MANUAL_FIX] * 3

    def test_non_primary_rules_accept_any_folder(self):
        rules = default_rules()
        assert rules[2].folder_filter is None
        assert rules[5].folder_filter is None


class TestResolvePriorityTiers:
    """Strongest tier first, latest document within it."""

    def test_stronger_tier_beats_newer_document(self):
        candidates = [
            _document("22717129.pdf", "Misc", document_date="2024-01-01"),
            _document("Original Licence.pdf", "Misc", document_date="2001-01-01"),
        ]

        match = resolve_priority_tiers(candidates, NON_PRIMARY_FOLDER_RULE, 3)

        assert match.document.file_name == "Original Licence.pdf"
        assert match.tier == 2
        assert match.label == "Found In Non-Primary Folder - Priority 2"
        assert match.candidate_count == 1

    def test_latest_within_tier(self):
        candidates = [
            _document("Issued Licence 2001.pdf", "Misc", document_date="2001-01-01"),
            _document("Issued Licence 2019.pdf", "Misc", document_date="2019-05-01"),
        ]

        match = resolve_priority_tiers(candidates, NON_PRIMARY_FOLDER_RULE)

        assert match.document.file_name == "Issued Licence 2019.pdf"
        assert match.has_duplicate is False

    def test_same_date_tie_reports_multiple_matches(self):
        candidates = [
            _document("Issued Licence a.pdf", "Misc"),
            _document("Issued Licence b.pdf", "Misc"),
        ]

        match = resolve_priority_tiers(candidates, NON_PRIMARY_FOLDER_RULE)

        assert match.document.file_name == "Issued Licence a.pdf"
        assert match.has_duplicate is True
        assert match.label == "Found In Non-Primary Folder - Multiple Matches"

    def test_no_qualifying_candidate(self):
        assert resolve_priority_tiers([_document("site plan.pdf", "Misc")], NON_PRIMARY_FOLDER_RULE) is None


class TestRuleChain:
    """Rule ordering and the first-match-wins contract."""

    def setup_method(self):
        self.chain = RuleChain(default_rules())

    def test_permit_documents_folder_first(self):
        documents = [
            _document("Issued Licence.pdf", "LIB7", document_date="2024-01-01"),
            _document("Issued Licence.pdf", "Permit Documents", document_date="2001-01-01"),
        ]
        index = CandidateIndex.build(documents)

        match = self.chain.resolve(_licence(), index)

        assert match.rule_name == PERMIT_DOCUMENTS_RULE
        assert match.label == "Found In Permit Documents Folder - Priority 1"
        assert "Permit Documents" in match.document.file_url

    def test_application_folder_when_permit_folder_has_nothing(self):
        documents = [
            _document("site plan.pdf", "Permit Documents"),
            _document("Abstraction Licence.pdf", "Application & Associated Docs"),
        ]
        index = CandidateIndex.build(documents)

        match = self.chain.resolve(_licence(), index)

        assert match.rule_name == APPLICATION_OR_ROOT_RULE
        assert match.label == "Found In Application Or Root Folder - Priority 3"

    def test_manual_fix_rules_after_permit_rules(self):
        documents = [_document("Issued Licence.pdf", "Permit Documents", permit_number="633303G0038")]
        mappings = [ManualMapping(permit_number=PERMIT, permit_number_folder="633303G0038")]
        index = CandidateIndex.build(documents, mappings)

        match = self.chain.resolve(_licence(), index)

        assert match.rule_name == MANUAL_PERMIT_DOCUMENTS_RULE
        assert match.label == "Manual Folder Match Fix - In Permit Documents Folder - Priority 1"

    def test_no_rule_matches(self):
        index = CandidateIndex.build([_document("site plan.pdf", "Permit Documents")])
        assert self.chain.resolve(_licence(), index) is None

    def test_blank_licence_number_never_matches(self):
        index = CandidateIndex.build([_document("Issued Licence.pdf", "Permit Documents")])
        licence = LicenceRecord(licence_number="", permit_number=PERMIT)
        assert self.chain.resolve(licence, index) is None

    def test_later_rules_not_consulted_after_a_match(self):
        consulted = []

        def first_folder(file_url):
            consulted.append("first")
            return True

        def second_folder(file_url):
            consulted.append("second")
            return True

        chain = RuleChain([
            MatchingRule("Second", 2, CandidateSource.PERMIT_NUMBER, second_folder),
            MatchingRule("First", 1, CandidateSource.PERMIT_NUMBER, first_folder),
        ])
        index = CandidateIndex.build([_document("Issued Licence.pdf", "Misc")])

        match = chain.resolve(_licence(), index)

        assert match.rule_name == "First"
        assert "first" in consulted
        assert "second" not in consulted

    def test_rules_sorted_by_priority(self):
        rules = list(reversed(default_rules()))
        chain = RuleChain(rules)
        assert [rule.priority for rule in chain.rules] == [1, 2, 3, 4, 5, 6]

    @pytest.mark.parametrize("rules", [None, []])
    def test_missing_rules_rejected(self, rules):
        with pytest.raises(InputContractError) as exc_info:
            RuleChain(rules)
        assert exc_info.value.code == ErrorCode.INPUT_CONTRACT

    def test_duplicate_priorities_rejected(self):
        rules = [
            MatchingRule("A", 1, CandidateSource.PERMIT_NUMBER),
            MatchingRule("B", 1, CandidateSource.MANUAL_FIX),
        ]
        with pytest.raises(InputContractError) as exc_info:
            RuleChain(rules)
        assert "duplicated: 1" in exc_info.value.detail
