"""Extract records from the DMS and NALD registries."""
from pydantic import ConfigDict, model_validator

from licencefinder.models.base import LFBaseModel, OptionalInt, OptionalText, Text
from licencefinder.services.normalization import clean_permit_number


class LicenceRecord(LFBaseModel):
    """
    A NALD licence.

    The permit number is always a cleaned permit key: derived from the
    licence number when absent, normalised when supplied.
    """
    model_config = ConfigDict(frozen=True)

    licence_number: Text = ""
    permit_number: Text = ""
    region: Text = ""
    issue_number: OptionalInt = None
    signature_date: OptionalText = None
    authority_id: OptionalInt = None

    @model_validator(mode="before")
    @classmethod
    def _derive_permit_number(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            supplied = str(data.get("permit_number") or "").strip()
            data["permit_number"] = clean_permit_number(supplied or str(data.get("licence_number") or ""))
        return data


class DocumentRecord(LFBaseModel):
    """A candidate file in the DMS extract."""
    permit_number: Text = ""
    file_id: Text = ""
    file_name: Text = ""
    file_url: Text = ""
    document_date: OptionalText = None
    upload_date: OptionalText = None
    disclosure_status: Text = ""
    file_size: Text = ""
    other_reference: Text = ""
    file_type: Text = ""


class ManualMapping(LFBaseModel):
    """Redirects DMS folders whose key contains the target permit number."""
    permit_number: Text = ""
    permit_number_folder: Text = ""


class OverrideRecord(LFBaseModel):
    """An analyst-supplied pin of a file to a permit, valid up to an issue number."""
    permit_number: Text = ""
    file_url: Text = ""
    issue_number: OptionalInt = None
    file_id: Text = ""


class NaldMetadataRecord(LFBaseModel):
    """One row of NALD issue and version history (AABV)."""
    licence_number: Text = ""
    authority_id: OptionalInt = None
    issue_number: OptionalInt = None
    record_type: Text = "Issue"
    signature_date: OptionalText = None
    region: Text = ""

    @property
    def permit_number(self) -> str:
        return clean_permit_number(self.licence_number)


class FileReaderRecord(LFBaseModel):
    """Date of issue scraped from the licence document itself."""
    permit_number: Text = ""
    date_of_issue: OptionalText = None


class FileIdentificationRecord(LFBaseModel):
    """Output of the file identification pass over the permit folders."""
    file_name: Text = ""
    original_file_name: Text = ""
    file_type: Text = ""
    date_of_issue: OptionalText = None
    file_path: Text = ""
    identified_by_rule: Text = ""


class TemplateRecord(LFBaseModel):
    permit_number: Text = ""
    file_name: Text = ""
    primary_template: Text = ""
    secondary_template: Text = ""
    number_of_pages: OptionalInt = None


class FileInventoryRecord(LFBaseModel):
    """A file already downloaded to the WaterPdfs store, named "<permit>__<file>"."""
    permit_number: Text = ""
    file_name: Text = ""
    file_path: Text = ""
    file_size: Text = ""
    file_type: Text = ""
    modified_time: Text = ""

    @property
    def original_file_name(self) -> str:
        _, separator, original = self.file_name.partition("__")
        return original if separator else self.file_name
