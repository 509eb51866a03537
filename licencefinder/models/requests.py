"""API request models."""
from typing import Any, Dict, List, Optional

from pydantic import Field

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
from licencefinder.models.results import MatchResult


class ReconciliationRequest(LFBaseModel):
    documents: List[DocumentRecord] = Field(default_factory=list)
    licences: List[LicenceRecord] = Field(default_factory=list)
    manual_mappings: List[ManualMapping] = Field(default_factory=list)
    overrides: List[OverrideRecord] = Field(default_factory=list)
    metadata: List[NaldMetadataRecord] = Field(default_factory=list)
    previous_results: List[MatchResult] = Field(default_factory=list)
    file_reader_records: List[FileReaderRecord] = Field(default_factory=list)
    file_identification_records: List[FileIdentificationRecord] = Field(default_factory=list)
    template_records: List[TemplateRecord] = Field(default_factory=list)
    # Partial config; merged over defaults and environment
    config: Optional[Dict[str, Any]] = None
    requester: Optional[str] = None


class DuplicateDetectionRequest(LFBaseModel):
    documents: List[DocumentRecord] = Field(default_factory=list)
    licences: List[LicenceRecord] = Field(default_factory=list)


class DownloadManifestRequest(LFBaseModel):
    documents: List[DocumentRecord] = Field(default_factory=list)
    current_results: List[MatchResult] = Field(default_factory=list)
    previous_results: List[MatchResult] = Field(default_factory=list)
    region_filter: Optional[str] = None


class VersionDownloadManifestRequest(LFBaseModel):
    documents: List[DocumentRecord] = Field(default_factory=list)
    previous_results: List[MatchResult] = Field(default_factory=list)
    inventory: List[FileInventoryRecord] = Field(default_factory=list)
    region_filter: Optional[str] = None
