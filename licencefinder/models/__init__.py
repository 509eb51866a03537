from licencefinder.models.base import LFBaseModel
from licencefinder.models.extracts import (
    DocumentRecord,
    FileIdentificationRecord,
    FileInventoryRecord,
    FileReaderRecord,
    LicenceRecord,
    ManualMapping,
    NaldMetadataRecord,
    OverrideRecord,
    TemplateRecord,
)
from licencefinder.models.results import (
    DownloadInfo,
    DuplicateFileResult,
    MatchResult,
    VersionMismatchResult,
)
from licencefinder.models.reconciliation import (
    ReconciliationConfig,
    ReconciliationEvent,
    ReconciliationRun,
    ReconciliationStats,
)
from licencefinder.models.requests import (
    DownloadManifestRequest,
    DuplicateDetectionRequest,
    ReconciliationRequest,
    VersionDownloadManifestRequest,
)

__all__ = [
    "DocumentRecord",
    "DownloadInfo",
    "DownloadManifestRequest",
    "DuplicateDetectionRequest",
    "DuplicateFileResult",
    "FileIdentificationRecord",
    "FileInventoryRecord",
    "FileReaderRecord",
    "LFBaseModel",
    "LicenceRecord",
    "ManualMapping",
    "MatchResult",
    "NaldMetadataRecord",
    "OverrideRecord",
    "ReconciliationConfig",
    "ReconciliationEvent",
    "ReconciliationRequest",
    "ReconciliationRun",
    "ReconciliationStats",
    "TemplateRecord",
    "VersionDownloadManifestRequest",
    "VersionMismatchResult",
]
