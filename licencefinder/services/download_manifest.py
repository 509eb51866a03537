"""
Download manifests: the files to fetch from SharePoint for the next pass.

One manifest covers files newly matched in the current iteration. The other
follows up the version-mismatch workflow: every DMS file of a permit whose
scraped date of issue disagreed with NALD that is not yet in the file
inventory.
"""
import logging
import posixpath
from typing import Dict, Iterable, List, Optional, Set, Tuple

from licencefinder.models.extracts import DocumentRecord, FileInventoryRecord
from licencefinder.models.results import DownloadInfo, MatchResult
from licencefinder.services.normalization import permit_key

logger = logging.getLogger(__name__)

LIBRARY_MARKER = "lib"


def site_path(file_url: str) -> str:
    """URL up to the document library ("lib..."), or the whole URL when there is none."""
    if not file_url or not file_url.strip():
        return ""
    index = file_url.lower().find(LIBRARY_MARKER)
    return file_url[:index] if index > 0 else file_url


def library_path(file_url: str) -> str:
    """URL from the document library on, or "" when there is none."""
    if not file_url or not file_url.strip():
        return ""
    index = file_url.lower().find(LIBRARY_MARKER)
    return file_url[index:] if index >= 0 else ""


def deduplicate_destination_names(records: List[DownloadInfo]) -> List[DownloadInfo]:
    """Suffix repeated destination names with _1, _2, ... before the extension."""
    counts: Dict[str, int] = {}
    renamed = []
    for record in records:
        name = record.destination_file_name
        key = name.casefold()
        if key in counts:
            count = counts[key]
            counts[key] = count + 1
            stem, extension = posixpath.splitext(name)
            record = record.model_copy(update={"destination_file_name": f"{stem}_{count}{extension}"})
        else:
            counts[key] = 1
        renamed.append(record)
    return renamed


def download_info(document: DocumentRecord, region: str = "") -> DownloadInfo:
    return DownloadInfo(
        permit_number=document.permit_number,
        file_id=document.file_id,
        file_url=document.file_url,
        site_path=site_path(document.file_url),
        library_path=library_path(document.file_url),
        original_file_name=document.file_name,
        destination_file_name=f"{document.permit_number}__{document.file_name}",
        region=region,
    )


def _in_region(result: MatchResult, region_filter: Optional[str]) -> bool:
    return not region_filter or result.region.casefold() == region_filter.strip().casefold()


def build_download_manifest(
    documents: Iterable[DocumentRecord],
    current_results: Iterable[MatchResult],
    previous_results: Iterable[MatchResult],
    region_filter: Optional[str] = None,
) -> List[DownloadInfo]:
    """
    List matched files that the previous iteration did not already have.

    Only permits present in the previous iteration (optionally restricted to
    one region) are considered; a current result whose file id the previous
    iteration already matched is skipped.
    """
    previous = [result for result in previous_results if _in_region(result, region_filter)]
    previous_permits = {permit_key(result.permit_number) for result in previous}
    previous_file_ids = {result.file_id.casefold() for result in previous if result.file_id}

    documents_by_id: Dict[str, DocumentRecord] = {}
    for document in documents:
        if document.file_id and document.file_id.casefold() not in documents_by_id:
            documents_by_id[document.file_id.casefold()] = document

    records: List[DownloadInfo] = []
    for result in current_results:
        if permit_key(result.permit_number) not in previous_permits:
            continue
        if not result.file_id or result.file_id.casefold() in previous_file_ids:
            continue
        document = documents_by_id.get(result.file_id.casefold())
        if document is None:
            logger.warning("File %s matched for permit %s is not in the DMS extract", result.file_id, result.permit_number)
            continue
        records.append(download_info(document, result.region))

    logger.info("Download manifest lists %d files", len(records))
    return deduplicate_destination_names(records)


def needs_version_download(result: MatchResult) -> bool:
    """Date of issue disagreed with the signature date and no analyst override was involved."""
    return not result.doi_signature_date_match and "override" not in result.change_audit_action.casefold()


def build_version_download_manifest(
    documents: Iterable[DocumentRecord],
    previous_results: Iterable[MatchResult],
    inventory: Iterable[FileInventoryRecord],
    region_filter: Optional[str] = None,
) -> List[DownloadInfo]:
    """
    List every DMS file of a version-mismatched permit missing from the inventory.

    A previous-iteration result qualifies when its scraped date of issue did
    not match the NALD signature date and its audit action mentions no
    override ("Override cancelled" included). Inventory files are matched on
    permit and on the file name after the first "__".
    """
    flagged: Dict[str, str] = {}
    for result in previous_results:
        key = permit_key(result.permit_number)
        if key and key not in flagged and needs_version_download(result) and _in_region(result, region_filter):
            flagged[key] = result.region

    downloaded: Set[Tuple[str, str]] = {
        (permit_key(record.permit_number), record.original_file_name) for record in inventory
    }

    documents_by_permit: Dict[str, List[DocumentRecord]] = {}
    for document in documents:
        documents_by_permit.setdefault(permit_key(document.permit_number), []).append(document)

    records: List[DownloadInfo] = []
    for key, region in flagged.items():
        for document in documents_by_permit.get(key, []):
            if (key, document.file_name) in downloaded:
                continue
            records.append(download_info(document, region))

    logger.info("Version download manifest lists %d files for %d permits", len(records), len(flagged))
    return deduplicate_destination_names(records)
