"""Reconciliation configuration, diagnostics and run models."""
from typing import List, Literal, Optional

from pydantic import Field

from licencefinder.models.base import LFBaseModel
from licencefinder.models.results import MatchResult, VersionMismatchResult

ManualMappingTieBreak = Literal["longest", "first", "error"]


class ReconciliationConfig(LFBaseModel):
    # Which manual mapping wins when several folder keys contain the same permit
    manual_mapping_tie_break: ManualMappingTieBreak = "longest"
    include_version_mismatch: bool = True
    region_filter: Optional[str] = None


class ReconciliationEvent(LFBaseModel):
    """A per-licence diagnostic emitted while reconciling."""
    permit_number: str = ""
    licence_number: str = ""
    outcome: str
    rule_used: Optional[str] = None
    file_url: Optional[str] = None
    level: Literal["debug", "info", "warning"] = "info"
    message: str = ""


class ReconciliationStats(LFBaseModel):
    total_licences: int = Field(default=0, ge=0)
    matched: int = Field(default=0, ge=0)
    no_match: int = Field(default=0, ge=0)
    no_folder: int = Field(default=0, ge=0)
    overrides: int = Field(default=0, ge=0)
    overrides_cancelled: int = Field(default=0, ge=0)
    multiple_matches: int = Field(default=0, ge=0)
    version_mismatch_results: int = Field(default=0, ge=0)
    nald_data_quality_issues: int = Field(default=0, ge=0)


class ReconciliationRun(LFBaseModel):
    match_results: List[MatchResult] = Field(default_factory=list)
    version_results: List[VersionMismatchResult] = Field(default_factory=list)
    events: List[ReconciliationEvent] = Field(default_factory=list)
    stats: ReconciliationStats = Field(default_factory=ReconciliationStats)
    config: Optional[ReconciliationConfig] = None
