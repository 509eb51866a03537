"""
Version mismatch detection.

Runs over the previous iteration's match results. Where the date of issue
scraped from the matched file disagrees with the NALD signature date, the
file identification extract is searched for the file that really is the
licence for that signature date, and NALD is checked for missing signature
dates on later issues.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from licencefinder.models.extracts import (
    DocumentRecord,
    FileIdentificationRecord,
    NaldMetadataRecord,
)
from licencefinder.models.results import MatchResult, VersionMismatchResult
from licencefinder.services.nald_metadata import issue_metadata_by_permit
from licencefinder.services.normalization import (
    parse_sortable_date,
    permit_key,
    same_calendar_date,
)

logger = logging.getLogger(__name__)

LICENCE_FILE_TYPE = "licence"
ADDENDUM_FILE_TYPE = "addendum"


def _file_type(record: FileIdentificationRecord) -> str:
    return record.file_type.strip().lower()


class VersionMismatchDetector:
    """Re-derives the evidentiary licence file for licences with a date disagreement."""

    def detect(
        self,
        previous_results: Iterable[MatchResult],
        documents: Iterable[DocumentRecord],
        metadata_records: Iterable[NaldMetadataRecord],
        identification_records: Iterable[FileIdentificationRecord],
    ) -> List[VersionMismatchResult]:
        mismatched = [
            result for result in previous_results or []
            if result.date_of_issue and result.date_of_issue.strip()
            and result.signature_date and result.signature_date.strip()
            and not same_calendar_date(result.date_of_issue, result.signature_date)
        ]
        logger.info("Found %d previous results where date of issue differs from signature date", len(mismatched))
        if not mismatched:
            return []

        documents_by_permit: Dict[str, List[DocumentRecord]] = {}
        for document in documents or []:
            documents_by_permit.setdefault(permit_key(document.permit_number), []).append(document)
        metadata_by_permit = issue_metadata_by_permit(metadata_records or [])

        identification = []
        for record in identification_records or []:
            if record not in identification:
                identification.append(record)

        results: List[VersionMismatchResult] = []
        for previous in mismatched:
            key = permit_key(previous.permit_number)
            results.extend(
                self._evaluate(
                    previous,
                    documents_by_permit.get(key, []),
                    metadata_by_permit.get(key, []),
                    identification,
                )
            )
        return self._finalise(results)

    def _evaluate(
        self,
        previous: MatchResult,
        permit_documents: List[DocumentRecord],
        permit_metadata: List[NaldMetadataRecord],
        identification: List[FileIdentificationRecord],
    ) -> List[VersionMismatchResult]:
        document_names = {document.file_name.casefold() for document in permit_documents if document.file_name}
        permit_prefix = previous.permit_number.strip().casefold()

        identified = [
            record for record in identification
            if record.file_name.casefold() in document_names
            and record.original_file_name.casefold().startswith(permit_prefix)
        ]
        typed = sorted(
            (record for record in identified if _file_type(record) in (LICENCE_FILE_TYPE, ADDENDUM_FILE_TYPE)),
            key=lambda record: parse_sortable_date(record.date_of_issue),
            reverse=True,
        )
        logger.debug("Found %d identified licence or addendum files for permit %s", len(typed), previous.permit_number)

        licence_files = [
            record for record in typed
            if _file_type(record) == LICENCE_FILE_TYPE
            and same_calendar_date(record.date_of_issue, previous.signature_date)
        ]
        if licence_files:
            return [
                self._verify(previous, licence_file, permit_documents, permit_metadata)
                for licence_file in licence_files
            ]

        results = []
        seen_names = set()
        for addendum in typed:
            if _file_type(addendum) != ADDENDUM_FILE_TYPE:
                continue
            if not same_calendar_date(addendum.date_of_issue, previous.signature_date):
                continue
            if addendum.file_name.casefold() in seen_names:
                continue
            seen_names.add(addendum.file_name.casefold())
            results.append(
                self._build_result(
                    previous,
                    addendum,
                    permit_documents,
                    self._matching_metadata(addendum, permit_metadata),
                    determined_as_licence=False,
                    original_file_url="",
                )
            )

        if results:
            corresponding = self._latest_licence_on_or_before(typed, previous.signature_date)
            if corresponding is None:
                logger.debug("No licence file on or before %s for permit %s", previous.signature_date, previous.permit_number)
            else:
                results.append(self._verify(previous, corresponding, permit_documents, permit_metadata))
        return results

    @staticmethod
    def _latest_licence_on_or_before(
        typed: List[FileIdentificationRecord],
        signature_date: Optional[str],
    ) -> Optional[FileIdentificationRecord]:
        limit = parse_sortable_date(signature_date)
        if limit == datetime.min:
            return None
        eligible = []
        for record in typed:
            issued = parse_sortable_date(record.date_of_issue)
            if _file_type(record) == LICENCE_FILE_TYPE and issued != datetime.min and issued <= limit:
                eligible.append((issued, record))
        if not eligible:
            return None
        return max(eligible, key=lambda pair: pair[0])[1]

    @staticmethod
    def _matching_metadata(
        file_record: FileIdentificationRecord,
        permit_metadata: List[NaldMetadataRecord],
    ) -> Optional[NaldMetadataRecord]:
        for record in permit_metadata:
            if same_calendar_date(record.signature_date, file_record.date_of_issue):
                return record
        return None

    @staticmethod
    def has_nald_data_issue(
        matched: Optional[NaldMetadataRecord],
        permit_metadata: List[NaldMetadataRecord],
    ) -> bool:
        """
        NALD is inconsistent when no issue carries the file's date, or when an
        issue at or above the matched one has no signature date.
        """
        if matched is None:
            return True
        if matched.issue_number is None:
            return False
        return any(
            record.issue_number is not None
            and record.issue_number >= matched.issue_number
            and not record.signature_date
            for record in permit_metadata
        )

    def _verify(
        self,
        previous: MatchResult,
        licence_file: FileIdentificationRecord,
        permit_documents: List[DocumentRecord],
        permit_metadata: List[NaldMetadataRecord],
    ) -> VersionMismatchResult:
        matched = self._matching_metadata(licence_file, permit_metadata)
        if self.has_nald_data_issue(matched, permit_metadata):
            logger.warning(
                "NALD data quality issue for permit %s: file %s dated %s",
                previous.permit_number,
                licence_file.file_name,
                licence_file.date_of_issue,
            )
            return self._build_result(
                previous,
                licence_file,
                permit_documents,
                matched,
                determined_as_licence=False,
                original_file_url=previous.file_url,
                nald_data_quality_issue=True,
            )
        return self._build_result(
            previous,
            licence_file,
            permit_documents,
            matched,
            determined_as_licence=True,
            original_file_url=previous.file_url,
        )

    @staticmethod
    def _build_result(
        previous: MatchResult,
        file_record: FileIdentificationRecord,
        permit_documents: List[DocumentRecord],
        matched: Optional[NaldMetadataRecord],
        determined_as_licence: bool,
        original_file_url: str,
        nald_data_quality_issue: bool = False,
    ) -> VersionMismatchResult:
        document = next(
            (doc for doc in permit_documents if doc.file_name.casefold() == file_record.file_name.casefold()),
            None,
        )
        return VersionMismatchResult(
            permit_number=previous.permit_number,
            licence_number=previous.licence_number,
            region=previous.region,
            file_url=document.file_url if document else "",
            file_id=document.file_id if document else "",
            file_evaluated=file_record.file_name,
            file_type_evaluated=file_record.file_type,
            signature_date_of_file_evaluated=(matched.signature_date or "") if matched else "",
            date_of_issue_of_evaluated_file=file_record.date_of_issue,
            file_determined_as_licence=determined_as_licence,
            nald_data_quality_issue=nald_data_quality_issue,
            nald_id=(matched.authority_id or 0) if matched else 0,
            nald_issue_number=(matched.issue_number or 0) if matched else 0,
            original_file_url_identified_as_licence=original_file_url,
        )

    @staticmethod
    def _finalise(results: List[VersionMismatchResult]) -> List[VersionMismatchResult]:
        unique: List[VersionMismatchResult] = []
        seen_urls = set()
        for result in results:
            if result.file_url in seen_urls:
                continue
            seen_urls.add(result.file_url)
            unique.append(result)
        unique.sort(key=lambda result: result.permit_number)

        licence_counts: Dict[str, int] = {}
        for result in unique:
            if result.file_determined_as_licence and result.file_type_evaluated.strip().lower() == LICENCE_FILE_TYPE:
                licence_counts[result.permit_number] = licence_counts.get(result.permit_number, 0) + 1

        return [
            result.model_copy(update={"licence_count": licence_counts.get(result.permit_number, 0)})
            for result in unique
        ]
