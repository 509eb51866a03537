"""Licence finder reconciliation API routes."""
from typing import List, Optional

from fastapi import APIRouter

from licencefinder.models.reconciliation import ReconciliationRun
from licencefinder.models.requests import (
    DownloadManifestRequest,
    DuplicateDetectionRequest,
    ReconciliationRequest,
    VersionDownloadManifestRequest,
)
from licencefinder.models.results import DownloadInfo, DuplicateFileResult
from licencefinder.services.download_manifest import (
    build_download_manifest,
    build_version_download_manifest,
)
from licencefinder.services.duplicate_detection import find_duplicate_licence_files
from licencefinder.services.errors import LicenceFinderError, to_http_exception
from licencefinder.services.logging import log_error
from licencefinder.services.reconciliation import LicenceReconciler
from licencefinder.services.reconciliation_inputs import resolve_reconciliation_config
from licencefinder.services.sources import InMemorySources

router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])


@router.post("/run", response_model=ReconciliationRun)
def run_reconciliation(payload: ReconciliationRequest):
    try:
        config = resolve_reconciliation_config(payload.config)
        sources = InMemorySources(
            documents=payload.documents,
            manual_mappings=payload.manual_mappings,
            overrides=payload.overrides,
            licences=payload.licences,
            metadata=payload.metadata,
            previous_results=payload.previous_results,
            file_reader_records=payload.file_reader_records,
            file_identification_records=payload.file_identification_records,
            template_records=payload.template_records,
        )
        reconciler = LicenceReconciler(config=config)
        return reconciler.run(
            documents=sources,
            licences=sources,
            history=sources,
            evidence=sources,
            requester=payload.requester,
        )
    except LicenceFinderError as exc:
        log_error(exc.code.value, exc.message, exc.context, exception=exc if exc.__cause__ else None)
        raise to_http_exception(exc) from exc


@router.post("/duplicates", response_model=List[DuplicateFileResult])
def find_duplicates(payload: DuplicateDetectionRequest):
    return find_duplicate_licence_files(payload.documents, payload.licences)


def _region_filter(requested: Optional[str]) -> Optional[str]:
    if requested is not None:
        return requested
    try:
        return resolve_reconciliation_config().region_filter
    except LicenceFinderError as exc:
        raise to_http_exception(exc) from exc


@router.post("/download-manifest", response_model=List[DownloadInfo])
def download_manifest(payload: DownloadManifestRequest):
    region_filter = _region_filter(payload.region_filter)
    return build_download_manifest(
        payload.documents,
        payload.current_results,
        payload.previous_results,
        region_filter=region_filter,
    )


@router.post("/version-download-manifest", response_model=List[DownloadInfo])
def version_download_manifest(payload: VersionDownloadManifestRequest):
    return build_version_download_manifest(
        payload.documents,
        payload.previous_results,
        payload.inventory,
        region_filter=_region_filter(payload.region_filter),
    )
