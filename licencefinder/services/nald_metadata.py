"""Views over the NALD issue and version history extract."""
from typing import Dict, Iterable, List

from licencefinder.models.extracts import NaldMetadataRecord
from licencefinder.services.normalization import parse_sortable_date, permit_key

ISSUE_RECORD_TYPE = "issue"


def is_issue_record(record: NaldMetadataRecord) -> bool:
    record_type = record.record_type.strip().lower()
    return not record_type or record_type == ISSUE_RECORD_TYPE


def issue_metadata_by_permit(records: Iterable[NaldMetadataRecord]) -> Dict[str, List[NaldMetadataRecord]]:
    """All issue records per permit key, in input order."""
    grouped: Dict[str, List[NaldMetadataRecord]] = {}
    for record in records:
        if not is_issue_record(record):
            continue
        key = permit_key(record.permit_number)
        if key:
            grouped.setdefault(key, []).append(record)
    return grouped


def latest_issue_metadata(records: Iterable[NaldMetadataRecord]) -> Dict[str, NaldMetadataRecord]:
    """The issue record with the latest signature date per permit key."""
    return {
        key: max(group, key=lambda record: parse_sortable_date(record.signature_date))
        for key, group in issue_metadata_by_permit(records).items()
    }
