"""Match, version-mismatch and reporting result models."""
from typing import Any, ClassVar, Dict

from pydantic import Field

from licencefinder.models.base import (
    Count,
    Flag,
    LFBaseModel,
    OptionalFlag,
    OptionalInt,
    OptionalText,
    Text,
)

NO_FOLDER_FOUND = "No Folder Found"
NO_MATCH_FOUND = "No Match Found"

RULE_NOT_APPLICABLE = "Not Applicable"
RULE_NO_MATCH = "No Match"
RULE_OVERRIDE = "Override"

AUDIT_OVERRIDE = "Override"
AUDIT_OVERRIDE_CANCELLED = "Override cancelled"


MATCH_RESULT_HEADERS: Dict[str, str] = {
    "permit_number": "Permit Number",
    "file_url": "File URL",
    "rule_used": "Rule Used",
    "change_audit_action": "Override Action",
    "licence_number": "License Number",
    "primary_template": "Primary Template",
    "secondary_template": "Secondary Template",
    "number_of_pages": "Number Of Pages",
    "document_date": "Document Date",
    "signature_date": "Latest issued signature date",
    "nald_id": "NALD AABL_ID",
    "nald_issue_number": "NALD Issue_No",
    "date_of_issue": "Scrapped Date of Issue",
    "doi_signature_date_match": "Latest issued signature date = Scraped Date of Issue",
    "included_in_version_match": "Included in VersionMatch process",
    "single_licence_in_version_match": "Single Licence found in VersionMatch process",
    "version_match_file_url": "Version Match Licence URL",
    "duplicate_licence_in_version_match": "Duplicate licences found in VersionMatch process",
    "nald_issue": "Signature date DQ issue found in VersionMatch process",
    "other_reference": "Other Reference",
    "file_size": "File Size",
    "disclosure_status": "Disclosure Status",
    "region": "Region",
    "previous_iteration_rule_used": "Previous Iteration Rule Used",
    "difference_in_rule_used": "Difference In Rule Used In Iterations",
    "previous_iteration_file_url": "Previous Iteration File URL",
    "difference_in_file_url": "Difference In File URL In Iterations",
    "file_id": "File ID",
}

VERSION_RESULT_HEADERS: Dict[str, str] = {
    "permit_number": "Permit Number",
    "licence_number": "License Number",
    "region": "Region",
    "file_url": "File URL",
    "signature_date_of_file_evaluated": "Signature Date Of File Evaluated",
    "file_evaluated": "File Evaluated",
    "file_type_evaluated": "Evaluated File Type",
    "file_determined_as_licence": "File Determined As Licence",
    "licence_count": "Licence Count For Permit Number",
    "nald_data_quality_issue": "Is NALD Data Quality Issue",
    "nald_id": "Nald Id",
    "nald_issue_number": "NALD Issue No.",
    "date_of_issue_of_evaluated_file": "Date of Issue Of Evaluated File",
    "original_file_url_identified_as_licence": "Original File URL Identified As Licence",
    "file_id": "File ID",
}

DUPLICATE_RESULT_HEADERS: Dict[str, str] = {
    "permit_number": "Permit Number",
    "file_url": "File URL",
    "file_name": "File Name",
    "region": "Region",
}

DOWNLOAD_INFO_HEADERS: Dict[str, str] = {
    "permit_number": "PermitNumber",
    "file_url": "FullPath",
    "site_path": "SitePath",
    "library_path": "LibraryAndFilePath",
    "original_file_name": "OriginalFileName",
    "destination_file_name": "DestinationFileName__1",
}


class ReportRowMixin:
    """Renders a model as a workbook row keyed by its column headers."""
    report_headers: ClassVar[Dict[str, str]] = {}

    def to_report_row(self) -> Dict[str, Any]:
        row = {}
        for field_name, header in self.report_headers.items():
            value = getattr(self, field_name)
            row[header] = "" if value is None else value
        return row


class MatchResult(ReportRowMixin, LFBaseModel):
    """The outcome of reconciling one licence record."""
    report_headers: ClassVar[Dict[str, str]] = MATCH_RESULT_HEADERS

    permit_number: Text = ""
    licence_number: Text = ""
    region: Text = ""
    file_url: Text = ""
    file_id: Text = ""
    rule_used: str = Field(..., min_length=1)
    change_audit_action: Text = ""
    multiple_matches: Flag = False
    document_date: OptionalText = None
    other_reference: Text = ""
    file_size: Text = ""
    disclosure_status: Text = ""

    signature_date: OptionalText = None
    date_of_issue: OptionalText = None
    doi_signature_date_match: Flag = False
    nald_id: Count = 0
    nald_issue_number: Count = 0

    previous_iteration_rule_used: OptionalText = None
    previous_iteration_file_url: OptionalText = None
    difference_in_rule_used: Flag = False
    difference_in_file_url: Flag = False

    included_in_version_match: Flag = False
    single_licence_in_version_match: OptionalFlag = None
    version_match_file_url: OptionalText = None
    duplicate_licence_in_version_match: OptionalFlag = None
    nald_issue: OptionalFlag = None

    primary_template: Text = ""
    secondary_template: Text = ""
    number_of_pages: OptionalInt = None


class VersionMismatchResult(ReportRowMixin, LFBaseModel):
    """A file re-derived for a licence whose scraped date of issue disagrees with NALD."""
    report_headers: ClassVar[Dict[str, str]] = VERSION_RESULT_HEADERS

    permit_number: Text = ""
    licence_number: Text = ""
    region: Text = ""
    file_url: Text = ""
    file_id: Text = ""
    file_evaluated: Text = ""
    file_type_evaluated: Text = ""
    signature_date_of_file_evaluated: Text = ""
    date_of_issue_of_evaluated_file: OptionalText = None
    file_determined_as_licence: Flag = False
    licence_count: Count = 0
    nald_data_quality_issue: Flag = False
    nald_id: Count = 0
    nald_issue_number: Count = 0
    original_file_url_identified_as_licence: Text = ""


class DuplicateFileResult(ReportRowMixin, LFBaseModel):
    report_headers: ClassVar[Dict[str, str]] = DUPLICATE_RESULT_HEADERS

    permit_number: Text = ""
    file_url: Text = ""
    file_name: Text = ""
    region: Text = ""


class DownloadInfo(ReportRowMixin, LFBaseModel):
    """One file to fetch from SharePoint for the current iteration."""
    report_headers: ClassVar[Dict[str, str]] = DOWNLOAD_INFO_HEADERS

    permit_number: Text = ""
    file_id: Text = ""
    file_url: Text = ""
    site_path: Text = ""
    library_path: Text = ""
    original_file_name: Text = ""
    destination_file_name: Text = ""
    region: Text = ""
