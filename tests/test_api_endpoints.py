"""
Tests for API Endpoints

Tests the FastAPI endpoints for the Licence Finder API.
"""

import pytest
from fastapi.testclient import TestClient

# Import the FastAPI app
from main import app
from licencefinder.services.reconciliation_inputs import (
    INCLUDE_VERSION_MISMATCH_ENV,
    REGION_FILTER_ENV,
    TIE_BREAK_ENV,
)

client = TestClient(app)

SITE = "https://ea.sharepoint.com/sites/WaterResources/"


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for name in (TIE_BREAK_ENV, INCLUDE_VERSION_MISMATCH_ENV, REGION_FILTER_ENV):
        monkeypatch.delenv(name, raising=False)


def _document(permit_number, file_name, folder="Permit Documents", file_id=None):
    return {
        "permit_number": permit_number,
        "file_id": file_id or f"{permit_number}-{file_name}",
        "file_name": file_name,
        "file_url": f"{SITE}LIB7/{permit_number}/{folder}/{file_name}",
        "document_date": "2019-05-01",
    }


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_health_check(self):
        """Test main health endpoint."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "licencefinder"


class TestReconciliationEndpoint:
    """Test the reconciliation run endpoint."""

    def test_run(self):
        """Test a run with a match, a missing folder and an override."""
        response = client.post("/reconciliation/run", json={
            "documents": [_document("22717129", "Issued Licence.pdf", file_id="F1")],
            "licences": [
                {"licence_number": "2/27/17/129", "region": "Anglian"},
                {"licence_number": "9/99/99/999", "region": "Thames"},
                {"licence_number": "NE/027/0009/030", "region": "North East"},
            ],
            "overrides": [
                {"permit_number": "NE0270009030", "file_url": f"{SITE}LIB7/x.pdf", "issue_number": 2},
            ],
            "requester": "analyst@example.com",
        })
        assert response.status_code == 200
        data = response.json()

        results = data["match_results"]
        assert [r["permit_number"] for r in results] == ["22717129", "99999999", "NE0270009030"]
        assert results[0]["rule_used"] == "Found In Permit Documents Folder - Priority 1"
        assert results[0]["file_id"] == "F1"
        assert results[1]["file_url"] == "No Folder Found"
        assert results[2]["rule_used"] == "Override"
        assert data["stats"]["total_licences"] == 3
        assert data["config"]["manual_mapping_tie_break"] == "longest"
        assert len(data["events"]) == 3

    def test_run_with_config(self):
        """Test config overrides are applied to the run."""
        response = client.post("/reconciliation/run", json={
            "documents": [],
            "licences": [],
            "config": {"manual_mapping_tie_break": "first", "include_version_mismatch": False},
        })
        assert response.status_code == 200
        assert response.json()["config"]["manual_mapping_tie_break"] == "first"
        assert response.json()["config"]["include_version_mismatch"] is False

    def test_invalid_config(self):
        """Test an invalid tie break is rejected with a structured error."""
        response = client.post("/reconciliation/run", json={
            "documents": [],
            "licences": [],
            "config": {"manual_mapping_tie_break": "random"},
        })
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "INVALID_CONFIG"
        assert detail["context"]["field"] == "manual_mapping_tie_break"

    def test_ambiguous_manual_mapping(self):
        """Test the error tie break surfaces conflicting manual mappings."""
        response = client.post("/reconciliation/run", json={
            "documents": [_document("ABC123", "Issued Licence.pdf")],
            "licences": [{"licence_number": "T1"}],
            "manual_mappings": [
                {"permit_number": "T1", "permit_number_folder": "ABC123"},
                {"permit_number": "T2", "permit_number_folder": "ABC123 - archive"},
            ],
            "config": {"manual_mapping_tie_break": "error"},
        })
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "AMBIGUOUS_MAPPING"

    def test_unknown_fields_rejected(self):
        """Test request validation forbids unknown fields."""
        response = client.post("/reconciliation/run", json={
            "documents": [],
            "licences": [],
            "invoices": [],
        })
        assert response.status_code == 422


class TestReportingEndpoints:
    """Test the duplicate and download manifest endpoints."""

    def test_duplicates(self):
        """Test a truncated twin is reported."""
        response = client.post("/reconciliation/duplicates", json={
            "documents": [
                _document("22717129", "22717129.pdf"),
                _document("22717129", "2717129.pdf", folder="Archive"),
            ],
            "licences": [{"licence_number": "2/27/17/129", "region": "Anglian"}],
        })
        assert response.status_code == 200
        data = response.json()
        assert [row["file_name"] for row in data] == ["22717129.pdf", "2717129.pdf"]
        assert data[0]["region"] == "Anglian"

    def test_download_manifest(self):
        """Test newly matched files are listed for download."""
        response = client.post("/reconciliation/download-manifest", json={
            "documents": [_document("22717129", "Issued Licence.pdf", file_id="new")],
            "current_results": [
                {"permit_number": "22717129", "file_id": "new", "rule_used": "Override", "region": "Anglian"},
            ],
            "previous_results": [
                {"permit_number": "22717129", "file_id": "old", "rule_used": "No Match", "region": "Anglian"},
            ],
        })
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["destination_file_name"] == "22717129__Issued Licence.pdf"
        assert data[0]["site_path"] == SITE

    def test_download_manifest_region_from_environment(self, monkeypatch):
        """Test the region filter falls back to the environment."""
        monkeypatch.setenv(REGION_FILTER_ENV, "Thames")
        response = client.post("/reconciliation/download-manifest", json={
            "documents": [_document("22717129", "Issued Licence.pdf", file_id="new")],
            "current_results": [
                {"permit_number": "22717129", "file_id": "new", "rule_used": "Override", "region": "Anglian"},
            ],
            "previous_results": [
                {"permit_number": "22717129", "file_id": "old", "rule_used": "No Match", "region": "Anglian"},
            ],
        })
        assert response.status_code == 200
        assert response.json() == []

    def test_version_download_manifest(self):
        """Test files of mismatched permits missing from the inventory are listed."""
        response = client.post("/reconciliation/version-download-manifest", json={
            "documents": [
                _document("22717129", "Issued Licence.pdf", file_id="F1"),
                _document("22717129", "Variation.pdf", file_id="F2"),
            ],
            "previous_results": [
                {
                    "permit_number": "22717129",
                    "rule_used": "Found In Permit Documents Folder - Priority 1",
                    "doi_signature_date_match": False,
                    "region": "Anglian",
                },
            ],
            "inventory": [
                {"permit_number": "22717129", "file_name": "22717129__Issued Licence.pdf"},
            ],
        })
        assert response.status_code == 200
        data = response.json()
        assert [row["file_id"] for row in data] == ["F2"]
        assert data[0]["destination_file_name"] == "22717129__Variation.pdf"
