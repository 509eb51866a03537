"""Helpers to resolve reconciliation configuration and load inputs from CSV extracts."""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, Mapping

from pydantic import ValidationError

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
from licencefinder.models.reconciliation import ReconciliationConfig
from licencefinder.models.results import MatchResult
from licencefinder.services.errors import ConfigError
from licencefinder.services.extract_reader import (
    DMS_EXTRACT_HEADERS,
    MANUAL_MAPPING_HEADERS,
    MATCH_RESULT_HEADER_MAPPING,
    NALD_EXTRACT_HEADERS,
    NALD_METADATA_HEADERS,
    OVERRIDE_HEADERS,
    read_extract,
)
from licencefinder.services.sources import InMemorySources

logger = logging.getLogger(__name__)

TIE_BREAK_ENV = "LICENCEFINDER_MANUAL_MAPPING_TIE_BREAK"
INCLUDE_VERSION_MISMATCH_ENV = "LICENCEFINDER_INCLUDE_VERSION_MISMATCH"
REGION_FILTER_ENV = "LICENCEFINDER_REGION_FILTER"

# extract name -> (source attribute, record model, header mapping)
EXTRACT_LAYOUTS = {
    "documents": ("documents", DocumentRecord, DMS_EXTRACT_HEADERS),
    "licences": ("licences", LicenceRecord, NALD_EXTRACT_HEADERS),
    "manual_mappings": ("manual_mappings", ManualMapping, MANUAL_MAPPING_HEADERS),
    "overrides": ("overrides", OverrideRecord, OVERRIDE_HEADERS),
    "metadata": ("metadata", NaldMetadataRecord, NALD_METADATA_HEADERS),
    "previous_results": ("previous_results", MatchResult, MATCH_RESULT_HEADER_MAPPING),
    "current_results": ("current_results", MatchResult, MATCH_RESULT_HEADER_MAPPING),
    "file_reader": ("file_reader_records", FileReaderRecord, None),
    "file_identification": ("file_identification_records", FileIdentificationRecord, None),
    "templates": ("template_records", TemplateRecord, None),
}

REQUIRED_EXTRACTS = ("documents", "licences")


def resolve_reconciliation_config(overrides: Dict[str, Any] | None = None) -> ReconciliationConfig:
    """Defaults, then environment, then explicit overrides."""
    config = _merge_config(_default_config(), _env_config())
    config = _merge_config(config, overrides)
    try:
        return ReconciliationConfig(**config)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ())) or "config"
        raise ConfigError(field, error.get("msg", str(exc))) from exc


def load_sources_from_csv(extracts: Mapping[str, bytes]) -> InMemorySources:
    """
    Build in-memory sources from CSV extract bytes keyed by extract name.

    The DMS and NALD licence extracts are required; the rest are optional
    and default to empty.
    """
    unknown = sorted(set(extracts) - set(EXTRACT_LAYOUTS))
    if unknown:
        raise ConfigError("extracts", f"Unknown extract names: {', '.join(unknown)}")
    missing = [name for name in REQUIRED_EXTRACTS if not extracts.get(name)]
    if missing:
        raise ConfigError("extracts", f"Missing required extracts: {', '.join(missing)}")

    loaded: Dict[str, Any] = {}
    for name, file_bytes in extracts.items():
        if not file_bytes:
            continue
        attribute, model, header_mapping = EXTRACT_LAYOUTS[name]
        loaded[attribute] = read_extract(file_bytes, model, header_mapping, source=name)
        logger.info("Loaded %d records from %s extract", len(loaded[attribute]), name)
    return InMemorySources(**loaded)


def _merge_config(base: Dict[str, Any], updates: Dict[str, Any] | None) -> Dict[str, Any]:
    if not updates:
        return base

    merged = dict(base)
    for key in ("manual_mapping_tie_break", "include_version_mismatch", "region_filter"):
        if key in updates and updates.get(key) is not None:
            merged[key] = updates.get(key)

    unknown = sorted(set(updates) - set(merged))
    if unknown:
        raise ConfigError(unknown[0], "Unknown configuration key")
    return merged


def _env_config() -> Dict[str, Any]:
    config: Dict[str, Any] = {}
    tie_break = os.getenv(TIE_BREAK_ENV)
    if tie_break:
        config["manual_mapping_tie_break"] = tie_break.strip().lower()
    include_version_mismatch = os.getenv(INCLUDE_VERSION_MISMATCH_ENV)
    if include_version_mismatch:
        config["include_version_mismatch"] = include_version_mismatch.strip().lower() in ("1", "true", "yes")
    region_filter = os.getenv(REGION_FILTER_ENV)
    if region_filter:
        config["region_filter"] = region_filter.strip()
    return config


def _default_config() -> Dict[str, Any]:
    return {
        "manual_mapping_tie_break": "longest",
        "include_version_mismatch": True,
        "region_filter": None,
    }
