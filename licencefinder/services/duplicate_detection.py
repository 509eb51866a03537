"""
Duplicate licence file detection.

Migrated DMS folders often hold the same licence twice: once under its
proper name and once with the first character lost ("22717129.pdf" next to
"2717129.pdf"). Files named by permit number are checked for such a twin.
"""
import logging
from typing import Dict, Iterable, List

from licencefinder.models.extracts import DocumentRecord, LicenceRecord
from licencefinder.models.results import DuplicateFileResult
from licencefinder.services.filename_heuristics import is_priority_4_file_name
from licencefinder.services.normalization import permit_key

logger = logging.getLogger(__name__)


def find_duplicate_licence_files(
    documents: Iterable[DocumentRecord],
    licences: Iterable[LicenceRecord] = (),
) -> List[DuplicateFileResult]:
    """Report each permit-named file together with its truncated twin."""
    regions: Dict[str, str] = {}
    for licence in licences:
        key = permit_key(licence.permit_number)
        if key and key not in regions:
            regions[key] = licence.region

    grouped: Dict[str, List[DocumentRecord]] = {}
    for document in documents:
        key = permit_key(document.permit_number)
        if key:
            grouped.setdefault(key, []).append(document)
    logger.info("Processing %d permit groups for duplicate detection", len(grouped))

    results: List[DuplicateFileResult] = []
    for key, permit_documents in grouped.items():
        region = regions.get(key, "")
        for document in permit_documents:
            if not is_priority_4_file_name(document.file_name, document.permit_number):
                continue
            if len(document.file_name) <= 1:
                continue
            twin_name = document.file_name[1:].casefold()
            for twin in permit_documents:
                if twin.file_name.casefold() != twin_name:
                    continue
                if twin.file_url.casefold() == document.file_url.casefold():
                    continue
                results.append(
                    DuplicateFileResult(
                        permit_number=document.permit_number,
                        file_url=document.file_url,
                        file_name=document.file_name,
                        region=region,
                    )
                )
                results.append(
                    DuplicateFileResult(
                        permit_number=document.permit_number,
                        file_url=twin.file_url,
                        file_name=twin.file_name,
                        region=region,
                    )
                )

    logger.info("Duplicate detection found %d potential duplicates", len(results))
    return results
