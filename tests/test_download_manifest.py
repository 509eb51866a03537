"""
Tests for the download manifest of newly matched files.
"""

from licencefinder.models.extracts import DocumentRecord, FileInventoryRecord
from licencefinder.models.results import MatchResult
from licencefinder.services.download_manifest import (
    build_download_manifest,
    build_version_download_manifest,
    deduplicate_destination_names,
    library_path,
    site_path,
)

SITE = "https://ea.sharepoint.com/sites/WaterResources/"


def _document(permit_number, file_id, file_name="Issued Licence.pdf"):
    return DocumentRecord(
        permit_number=permit_number,
        file_id=file_id,
        file_name=file_name,
        file_url=f"{SITE}LIB7/{permit_number}/{file_name}",
    )


def _result(permit_number, file_id, region="Anglian"):
    return MatchResult(
        permit_number=permit_number,
        file_id=file_id,
        region=region,
        rule_used="Found In Non-Primary Folder - Priority 1",
    )


def test_site_and_library_paths():
    url = f"{SITE}LIB7/22717129/Issued Licence.pdf"
    assert site_path(url) == SITE
    assert library_path(url) == "LIB7/22717129/Issued Licence.pdf"


def test_paths_without_library():
    url = "https://ea.sharepoint.com/sites/Other/file.pdf"
    assert site_path(url) == url
    assert library_path(url) == ""
    assert site_path("") == ""
    assert library_path(None) == ""


class TestBuildDownloadManifest:
    """New file ids for permits the previous iteration covered."""

    def setup_method(self):
        self.documents = [
            _document("22717129", "old"),
            _document("22717129", "new"),
            _document("633303G0038", "other"),
        ]
        self.previous = [_result("22717129", "old"), _result("633303G0038", "", region="Midlands")]

    def test_new_file_listed(self):
        manifest = build_download_manifest(self.documents, [_result("22717129", "new")], self.previous)

        assert len(manifest) == 1
        info = manifest[0]
        assert info.file_id == "new"
        assert info.site_path == SITE
        assert info.library_path == "LIB7/22717129/Issued Licence.pdf"
        assert info.original_file_name == "Issued Licence.pdf"
        assert info.destination_file_name == "22717129__Issued Licence.pdf"
        assert info.region == "Anglian"

    def test_already_matched_file_skipped(self):
        assert build_download_manifest(self.documents, [_result("22717129", "old")], self.previous) == []

    def test_permit_missing_from_previous_iteration_skipped(self):
        documents = self.documents + [_document("99999999", "fresh")]
        assert build_download_manifest(documents, [_result("99999999", "fresh")], self.previous) == []

    def test_file_missing_from_extract_skipped(self):
        assert build_download_manifest(self.documents, [_result("22717129", "gone")], self.previous) == []

    def test_region_filter(self):
        current = [_result("22717129", "new"), _result("633303G0038", "other", region="Midlands")]

        manifest = build_download_manifest(self.documents, current, self.previous, region_filter=" midlands ")

        assert [info.file_id for info in manifest] == ["other"]

    def test_report_row_headers(self):
        manifest = build_download_manifest(self.documents, [_result("22717129", "new")], self.previous)
        row = manifest[0].to_report_row()
        assert row["FullPath"] == f"{SITE}LIB7/22717129/Issued Licence.pdf"
        assert row["DestinationFileName__1"] == "22717129__Issued Licence.pdf"


def test_destination_names_deduplicated():
    documents = [_document("22717129", "a"), _document("22717129", "b"), _document("22717129", "c")]
    previous = [_result("22717129", "")]
    current = [_result("22717129", "a"), _result("22717129", "b"), _result("22717129", "c")]

    manifest = build_download_manifest(documents, current, previous)

    assert [info.destination_file_name for info in manifest] == [
        "22717129__Issued Licence.pdf",
        "22717129__Issued Licence_1.pdf",
        "22717129__Issued Licence_2.pdf",
    ]


def test_deduplicate_is_case_insensitive():
    documents = [_document("P1", "a", "Licence.pdf"), _document("p1", "b", "licence.PDF")]
    previous = [_result("P1", "")]
    current = [_result("P1", "a"), _result("P1", "b")]

    manifest = deduplicate_destination_names(build_download_manifest(documents, current, previous))

    assert [info.destination_file_name for info in manifest] == ["P1__Licence.pdf", "p1__licence_1.PDF"]


def _mismatch(permit_number, region="Anglian", date_matched=False, audit_action=""):
    return MatchResult(
        permit_number=permit_number,
        region=region,
        rule_used="Found In Permit Documents Folder - Priority 1",
        doi_signature_date_match=date_matched,
        change_audit_action=audit_action,
    )


class TestBuildVersionDownloadManifest:
    """Files of version-mismatched permits that the inventory does not hold yet."""

    def setup_method(self):
        self.documents = [
            _document("22717129", "F1", "Issued Licence.pdf"),
            _document("22717129", "F2", "Variation 2015.pdf"),
            _document("633303G0038", "F3", "Licence.pdf"),
        ]
        self.inventory = [
            FileInventoryRecord(permit_number="22717129", file_name="22717129__Issued Licence.pdf"),
        ]

    def test_files_missing_from_inventory_listed(self):
        manifest = build_version_download_manifest(self.documents, [_mismatch("22717129")], self.inventory)

        assert len(manifest) == 1
        info = manifest[0]
        assert info.file_id == "F2"
        assert info.original_file_name == "Variation 2015.pdf"
        assert info.destination_file_name == "22717129__Variation 2015.pdf"
        assert info.site_path == SITE
        assert info.library_path == "LIB7/22717129/Variation 2015.pdf"
        assert info.region == "Anglian"

    def test_every_file_listed_without_inventory(self):
        manifest = build_version_download_manifest(self.documents, [_mismatch("22717129")], [])
        assert [info.file_id for info in manifest] == ["F1", "F2"]

    def test_matching_dates_skipped(self):
        previous = [_mismatch("22717129", date_matched=True)]
        assert build_version_download_manifest(self.documents, previous, []) == []

    def test_overrides_skipped(self):
        previous = [
            _mismatch("22717129", audit_action="Override"),
            _mismatch("633303G0038", audit_action="Override cancelled"),
        ]
        assert build_version_download_manifest(self.documents, previous, []) == []

    def test_region_filter(self):
        previous = [_mismatch("22717129"), _mismatch("633303G0038", region="Midlands")]

        manifest = build_version_download_manifest(self.documents, previous, [], region_filter="MIDLANDS")

        assert [info.file_id for info in manifest] == ["F3"]
        assert manifest[0].region == "Midlands"

    def test_repeated_permit_listed_once(self):
        previous = [_mismatch("633303G0038"), _mismatch("633303g0038")]
        manifest = build_version_download_manifest(self.documents, previous, [])
        assert [info.file_id for info in manifest] == ["F3"]

    def test_inventory_file_for_other_permit_does_not_count(self):
        inventory = [FileInventoryRecord(permit_number="633303G0038", file_name="633303G0038__Issued Licence.pdf")]
        manifest = build_version_download_manifest(self.documents, [_mismatch("22717129")], inventory)
        assert [info.file_id for info in manifest] == ["F1", "F2"]


def test_inventory_name_without_permit_prefix():
    assert FileInventoryRecord(file_name="a__b__c.pdf").original_file_name == "b__c.pdf"
    assert FileInventoryRecord(file_name="Licence.pdf").original_file_name == "Licence.pdf"
