"""
Tests for reconciliation config resolution and CSV source loading.
"""

import pytest

from licencefinder.services.errors import ConfigError, ErrorCode
from licencefinder.services.reconciliation import LicenceReconciler
from licencefinder.services.reconciliation_inputs import (
    INCLUDE_VERSION_MISMATCH_ENV,
    REGION_FILTER_ENV,
    TIE_BREAK_ENV,
    load_sources_from_csv,
    resolve_reconciliation_config,
)

DMS_CSV = (
    b"Permit Number,File Name,File URL,Document Date,File ID\n"
    b"22717129,Issued Licence.pdf,https://ea.sharepoint.com/sites/WR/LIB7/22717129/Permit Documents/Issued Licence.pdf,"
    b"2019-05-01,F1\n"
)
NALD_CSV = b"Licence No.,Region\n2/27/17/129,Anglian\n9/99/99/999,Thames\n"
OVERRIDE_CSV = (
    b"Permit Number,File URL,NALD Issue_No,File ID\n"
    b"99999999,https://ea.sharepoint.com/sites/WR/LIB7/99999999/Licence.pdf,1,O1\n"
)


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for name in (TIE_BREAK_ENV, INCLUDE_VERSION_MISMATCH_ENV, REGION_FILTER_ENV):
        monkeypatch.delenv(name, raising=False)


class TestResolveReconciliationConfig:
    """Defaults, environment, then explicit overrides."""

    def test_defaults(self):
        config = resolve_reconciliation_config()
        assert config.manual_mapping_tie_break == "longest"
        assert config.include_version_mismatch is True
        assert config.region_filter is None

    def test_environment(self, monkeypatch):
        monkeypatch.setenv(TIE_BREAK_ENV, " FIRST ")
        monkeypatch.setenv(INCLUDE_VERSION_MISMATCH_ENV, "false")
        monkeypatch.setenv(REGION_FILTER_ENV, "Anglian")

        config = resolve_reconciliation_config()

        assert config.manual_mapping_tie_break == "first"
        assert config.include_version_mismatch is False
        assert config.region_filter == "Anglian"

    def test_overrides_beat_environment(self, monkeypatch):
        monkeypatch.setenv(TIE_BREAK_ENV, "first")
        config = resolve_reconciliation_config({"manual_mapping_tie_break": "error", "region_filter": None})
        assert config.manual_mapping_tie_break == "error"

    def test_invalid_tie_break(self):
        with pytest.raises(ConfigError) as exc_info:
            resolve_reconciliation_config({"manual_mapping_tie_break": "random"})
        assert exc_info.value.code == ErrorCode.INVALID_CONFIG
        assert exc_info.value.context == {"field": "manual_mapping_tie_break"}

    def test_unknown_key(self):
        with pytest.raises(ConfigError) as exc_info:
            resolve_reconciliation_config({"strict_mode": True})
        assert exc_info.value.context == {"field": "strict_mode"}


class TestLoadSourcesFromCsv:
    def test_loads_required_and_optional_extracts(self):
        sources = load_sources_from_csv({"documents": DMS_CSV, "licences": NALD_CSV, "overrides": OVERRIDE_CSV})

        assert len(sources.read_documents()) == 1
        assert [licence.permit_number for licence in sources.read_licences()] == ["22717129", "99999999"]
        assert sources.read_overrides()[0].issue_number == 1
        assert sources.read_metadata() == []

    def test_loaded_sources_reconcile(self):
        sources = load_sources_from_csv({"documents": DMS_CSV, "licences": NALD_CSV, "overrides": OVERRIDE_CSV})

        run = LicenceReconciler().run(sources, sources, sources, sources)

        assert [result.rule_used for result in run.match_results] == [
            "Found In Permit Documents Folder - Priority 1",
            "Override",
        ]

    def test_missing_required_extract(self):
        with pytest.raises(ConfigError) as exc_info:
            load_sources_from_csv({"documents": DMS_CSV})
        assert "licences" in exc_info.value.detail

    def test_unknown_extract(self):
        with pytest.raises(ConfigError) as exc_info:
            load_sources_from_csv({"documents": DMS_CSV, "licences": NALD_CSV, "invoices": b"x"})
        assert "invoices" in exc_info.value.detail

    def test_empty_optional_extract_ignored(self):
        sources = load_sources_from_csv({"documents": DMS_CSV, "licences": NALD_CSV, "metadata": b""})
        assert sources.read_metadata() == []
