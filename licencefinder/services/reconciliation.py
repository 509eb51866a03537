"""
Licence reconciliation.

For every NALD licence, in input order, decide which DMS file is the licence
document: an analyst override when it is still current, otherwise the first
matching rule in the chain. Each result is then enriched with the scraped
date of issue, the NALD signature date, the previous iteration's outcome and
the version-mismatch findings for the permit.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from licencefinder.models.extracts import (
    DocumentRecord,
    FileIdentificationRecord,
    FileReaderRecord,
    LicenceRecord,
    ManualMapping,
    NaldMetadataRecord,
    OverrideRecord,
    TemplateRecord,
)
from licencefinder.models.reconciliation import (
    ReconciliationConfig,
    ReconciliationEvent,
    ReconciliationRun,
    ReconciliationStats,
)
from licencefinder.models.results import (
    AUDIT_OVERRIDE,
    AUDIT_OVERRIDE_CANCELLED,
    NO_FOLDER_FOUND,
    NO_MATCH_FOUND,
    RULE_NO_MATCH,
    RULE_NOT_APPLICABLE,
    RULE_OVERRIDE,
    MatchResult,
    VersionMismatchResult,
)
from licencefinder.services.candidate_index import CandidateIndex
from licencefinder.services.errors import InputContractError, handle_safely
from licencefinder.services.logging import log_reconciliation_run
from licencefinder.services.matching_rules import MatchingRule, RuleChain, default_rules
from licencefinder.services.nald_metadata import latest_issue_metadata
from licencefinder.services.normalization import (
    clean_permit_number,
    convert_date_to_standard_format,
    permit_key,
    same_calendar_date,
)
from licencefinder.services.sources import (
    DocumentSource,
    EvidenceSource,
    HistorySource,
    LicenceSource,
    ResultSink,
)
from licencefinder.services.version_mismatch import VersionMismatchDetector

logger = logging.getLogger(__name__)

R = TypeVar("R")


def first_by_permit(records: Iterable[R], permit_of: Callable[[R], str]) -> Dict[str, R]:
    """First record per permit key, in input order."""
    lookup: Dict[str, R] = {}
    for record in records:
        key = permit_key(permit_of(record))
        if key and key not in lookup:
            lookup[key] = record
    return lookup


@dataclass
class LoadedExtracts:
    """Records read from the collaborators for one run."""
    documents: List[DocumentRecord]
    manual_mappings: List[ManualMapping]
    overrides: List[OverrideRecord]
    licences: List[LicenceRecord]
    metadata: List[NaldMetadataRecord]
    previous_results: List[MatchResult] = field(default_factory=list)
    file_reader_records: List[FileReaderRecord] = field(default_factory=list)
    file_identification_records: List[FileIdentificationRecord] = field(default_factory=list)
    template_records: List[TemplateRecord] = field(default_factory=list)


@dataclass
class ReconciliationContext:
    """Everything a single licence is reconciled against."""
    index: CandidateIndex
    overrides: Dict[str, OverrideRecord] = field(default_factory=dict)
    metadata: Dict[str, NaldMetadataRecord] = field(default_factory=dict)
    previous_results: Dict[str, MatchResult] = field(default_factory=dict)
    file_reader_records: Dict[str, FileReaderRecord] = field(default_factory=dict)
    version_results: Dict[str, VersionMismatchResult] = field(default_factory=dict)
    templates: List[TemplateRecord] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        index: CandidateIndex,
        overrides: Iterable[OverrideRecord] = (),
        metadata: Iterable[NaldMetadataRecord] = (),
        previous_results: Iterable[MatchResult] = (),
        file_reader_records: Iterable[FileReaderRecord] = (),
        version_results: Iterable[VersionMismatchResult] = (),
        templates: Iterable[TemplateRecord] = (),
    ) -> "ReconciliationContext":
        return cls(
            index=index,
            overrides=first_by_permit(overrides, lambda record: record.permit_number),
            metadata=latest_issue_metadata(metadata),
            previous_results=first_by_permit(previous_results, lambda result: result.permit_number),
            file_reader_records=first_by_permit(file_reader_records, lambda record: record.permit_number),
            version_results=first_by_permit(version_results, lambda result: result.permit_number),
            templates=list(templates),
        )


class LicenceReconciler:
    """Reconciles NALD licences against the DMS extract."""

    def __init__(
        self,
        rules: Optional[Iterable[MatchingRule]] = None,
        config: Optional[ReconciliationConfig] = None,
        version_detector: Optional[VersionMismatchDetector] = None,
    ):
        self.config = config or ReconciliationConfig()
        self.rule_chain = RuleChain(default_rules() if rules is None else rules)
        self.version_detector = version_detector or VersionMismatchDetector()

    def run(
        self,
        documents: DocumentSource,
        licences: LicenceSource,
        history: Optional[HistorySource] = None,
        evidence: Optional[EvidenceSource] = None,
        sink: Optional[ResultSink] = None,
        requester: Optional[str] = None,
    ) -> ReconciliationRun:
        """
        Reconcile every licence and detect version mismatches.

        Any unexpected failure aborts the whole run with a ReconciliationError
        naming the stage; no partial results are returned.
        """
        if documents is None:
            raise InputContractError("documents", "A document source is required")
        if licences is None:
            raise InputContractError("licences", "A licence source is required")

        started = time.perf_counter()
        extracts = self._load_extracts(documents, licences, history, evidence)

        index = self._build_index(extracts.documents, extracts.manual_mappings)

        version_results: List[VersionMismatchResult] = []
        if self.config.include_version_mismatch and evidence is not None:
            version_results = self._detect_version_mismatches(
                extracts.previous_results,
                extracts.documents,
                extracts.metadata,
                extracts.file_identification_records,
            )

        context = ReconciliationContext.build(
            index,
            overrides=extracts.overrides,
            metadata=extracts.metadata,
            previous_results=extracts.previous_results,
            file_reader_records=extracts.file_reader_records,
            version_results=version_results,
            templates=extracts.template_records,
        )
        match_results, events = self._reconcile_all(extracts.licences, context)
        stats = self._summarise(match_results, version_results)

        if sink is not None:
            sink.write(match_results, version_results)

        log_reconciliation_run(
            total_licences=stats.total_licences,
            matched=stats.matched,
            no_match=stats.no_match,
            no_folder=stats.no_folder,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            requester=requester,
            overrides=stats.overrides,
            version_mismatch_results=stats.version_mismatch_results,
        )
        return ReconciliationRun(
            match_results=match_results,
            version_results=version_results,
            events=events,
            stats=stats,
            config=self.config,
        )

    @handle_safely("extract loading")
    def _load_extracts(
        self,
        documents: DocumentSource,
        licences: LicenceSource,
        history: Optional[HistorySource],
        evidence: Optional[EvidenceSource],
    ) -> LoadedExtracts:
        loaded = LoadedExtracts(
            documents=documents.read_documents(),
            manual_mappings=documents.read_manual_mappings(),
            overrides=documents.read_overrides(),
            licences=licences.read_licences(),
            metadata=licences.read_metadata(),
        )
        if history is not None:
            loaded.previous_results = history.read_previous_results()
        if evidence is not None:
            loaded.file_reader_records = evidence.read_file_reader_records()
            loaded.template_records = evidence.read_template_records()
            if self.config.include_version_mismatch:
                loaded.file_identification_records = evidence.read_file_identification_records()
        return loaded

    @handle_safely("candidate indexing")
    def _build_index(
        self,
        document_records: List[DocumentRecord],
        manual_mappings: List[ManualMapping],
    ) -> CandidateIndex:
        return CandidateIndex.build(document_records, manual_mappings, self.config.manual_mapping_tie_break)

    @handle_safely("version mismatch detection")
    def _detect_version_mismatches(
        self,
        previous_results: List[MatchResult],
        document_records: List[DocumentRecord],
        metadata_records: List[NaldMetadataRecord],
        identification_records: List[FileIdentificationRecord],
    ) -> List[VersionMismatchResult]:
        return self.version_detector.detect(
            previous_results,
            document_records,
            metadata_records,
            identification_records,
        )

    @handle_safely("licence matching")
    def _reconcile_all(
        self,
        licence_records: List[LicenceRecord],
        context: ReconciliationContext,
    ) -> Tuple[List[MatchResult], List[ReconciliationEvent]]:
        logger.info("Processing %d NALD records", len(licence_records))
        results: List[MatchResult] = []
        events: List[ReconciliationEvent] = []
        for licence in licence_records:
            result, event = self.reconcile_licence(licence, context)
            results.append(result)
            events.append(event)
        return results, events

    def reconcile_licence(
        self,
        licence: LicenceRecord,
        context: ReconciliationContext,
    ) -> Tuple[MatchResult, ReconciliationEvent]:
        """Reconcile a single licence record."""
        permit_number = clean_permit_number(licence.permit_number)
        if permit_number != licence.permit_number:
            licence = licence.model_copy(update={"permit_number": permit_number})
        key = permit_key(permit_number)
        metadata = context.metadata.get(key)
        current_issue_number = self._current_issue_number(licence, metadata)
        override = context.overrides.get(key)

        fields = {
            "permit_number": permit_number,
            "licence_number": licence.licence_number,
            "region": licence.region,
        }
        nald_issue_number = current_issue_number

        if override is not None and (override.issue_number or 0) >= current_issue_number:
            fields.update(
                file_url=override.file_url,
                file_id=override.file_id,
                rule_used=RULE_OVERRIDE,
                change_audit_action=AUDIT_OVERRIDE,
            )
            nald_issue_number = override.issue_number or 0
            outcome = "override"
        else:
            if override is not None:
                fields["change_audit_action"] = AUDIT_OVERRIDE_CANCELLED
            if not context.index.contains(permit_number):
                fields.update(rule_used=RULE_NOT_APPLICABLE, file_url=NO_FOLDER_FOUND)
                outcome = "no_folder"
            else:
                match = self.rule_chain.resolve(licence, context.index)
                if match is None:
                    fields.update(rule_used=RULE_NO_MATCH, file_url=NO_MATCH_FOUND)
                    outcome = "no_match"
                else:
                    document = match.document
                    fields.update(
                        rule_used=match.label,
                        multiple_matches=match.has_duplicate,
                        file_url=document.file_url,
                        file_id=document.file_id,
                        other_reference=document.other_reference,
                        file_size=document.file_size,
                        disclosure_status=document.disclosure_status,
                        document_date=document.document_date,
                    )
                    outcome = "matched"

        fields.update(self._enrichment(key, licence, metadata, fields["file_url"], fields["rule_used"], context))
        fields["nald_issue_number"] = nald_issue_number
        result = MatchResult(**fields)

        event = ReconciliationEvent(
            permit_number=permit_number,
            licence_number=licence.licence_number,
            outcome=outcome,
            rule_used=result.rule_used,
            file_url=result.file_url,
            level="warning" if result.nald_issue else "debug",
            message=self._describe(outcome, result),
        )
        logger.debug(event.message)
        return result, event

    @staticmethod
    def _current_issue_number(licence: LicenceRecord, metadata: Optional[NaldMetadataRecord]) -> int:
        if metadata is not None and metadata.issue_number is not None:
            return metadata.issue_number
        return licence.issue_number or 0

    def _enrichment(
        self,
        key: str,
        licence: LicenceRecord,
        metadata: Optional[NaldMetadataRecord],
        file_url: str,
        rule_used: str,
        context: ReconciliationContext,
    ) -> Dict:
        file_reader = context.file_reader_records.get(key)
        date_of_issue = convert_date_to_standard_format(file_reader.date_of_issue) if file_reader else None
        raw_signature_date = metadata.signature_date if metadata is not None else licence.signature_date
        signature_date = convert_date_to_standard_format(raw_signature_date)

        if metadata is not None and metadata.authority_id is not None:
            nald_id = metadata.authority_id
        else:
            nald_id = licence.authority_id or 0

        previous = context.previous_results.get(key)
        previous_rule = previous.rule_used if previous is not None else None
        previous_url = previous.file_url if previous is not None else None

        version = context.version_results.get(key)
        template = self._find_template(key, file_url, context.templates)

        return {
            "date_of_issue": date_of_issue,
            "signature_date": signature_date,
            "doi_signature_date_match": same_calendar_date(date_of_issue, signature_date),
            "nald_id": nald_id,
            "previous_iteration_rule_used": previous_rule,
            "previous_iteration_file_url": previous_url,
            "difference_in_rule_used": previous_rule != rule_used,
            "difference_in_file_url": previous_url is None or previous_url.casefold() != file_url.casefold(),
            "included_in_version_match": version is not None,
            "single_licence_in_version_match": version.file_determined_as_licence if version else None,
            "version_match_file_url": version.file_url if version else None,
            "duplicate_licence_in_version_match": version.licence_count > 1 if version else None,
            "nald_issue": version.nald_data_quality_issue if version else None,
            "primary_template": template.primary_template if template else "",
            "secondary_template": template.secondary_template if template else "",
            "number_of_pages": template.number_of_pages if template else None,
        }

    @staticmethod
    def _find_template(key: str, file_url: str, templates: List[TemplateRecord]) -> Optional[TemplateRecord]:
        if not key:
            return None
        url = file_url.casefold()
        for template in templates:
            if key in template.permit_number.casefold() and template.file_name and template.file_name.casefold() in url:
                return template
        return None

    @staticmethod
    def _describe(outcome: str, result: MatchResult) -> str:
        if outcome == "matched":
            return f"Licence {result.licence_number} matched {result.file_url} by {result.rule_used}"
        if outcome == "override":
            return f"Licence {result.licence_number} overridden with {result.file_url}"
        if outcome == "no_folder":
            return f"Licence {result.licence_number}: no DMS folder for permit {result.permit_number}"
        return f"Licence {result.licence_number}: no matching file for permit {result.permit_number}"

    @staticmethod
    def _summarise(
        match_results: List[MatchResult],
        version_results: List[VersionMismatchResult],
    ) -> ReconciliationStats:
        return ReconciliationStats(
            total_licences=len(match_results),
            matched=sum(
                1 for result in match_results
                if result.rule_used not in (RULE_OVERRIDE, RULE_NOT_APPLICABLE, RULE_NO_MATCH)
            ),
            no_match=sum(1 for result in match_results if result.rule_used == RULE_NO_MATCH),
            no_folder=sum(1 for result in match_results if result.rule_used == RULE_NOT_APPLICABLE),
            overrides=sum(1 for result in match_results if result.rule_used == RULE_OVERRIDE),
            overrides_cancelled=sum(
                1 for result in match_results if result.change_audit_action == AUDIT_OVERRIDE_CANCELLED
            ),
            multiple_matches=sum(1 for result in match_results if result.multiple_matches),
            version_mismatch_results=len(version_results),
            nald_data_quality_issues=sum(1 for result in version_results if result.nald_data_quality_issue),
        )
