"""
Extract Reader for the licence finder

Reads CSV exports of the DMS and NALD extracts into typed records, mapping
spreadsheet headers onto model fields.
"""
import csv
import io
import logging
import re
from typing import Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError

from licencefinder.models.base import LFBaseModel
from licencefinder.models.results import MATCH_RESULT_HEADERS, VERSION_RESULT_HEADERS
from licencefinder.services.errors import AmbiguousMappingError, EmptyExtractError, ExtractParseError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=LFBaseModel)

HeaderMapping = Dict[str, List[str]]

DMS_EXTRACT_HEADERS: HeaderMapping = {
    "Permit Number": ["permit_number"],
    "Document Date": ["document_date"],
    "Uploaded Date": ["upload_date"],
    "File URL": ["file_url"],
    "File Name": ["file_name"],
    "File Size": ["file_size"],
    "Disclosure Status": ["disclosure_status"],
    "Other Reference": ["other_reference"],
    "File ID": ["file_id"],
}

NALD_EXTRACT_HEADERS: HeaderMapping = {
    "Licence No.": ["licence_number"],
    "Region": ["region"],
}

NALD_METADATA_HEADERS: HeaderMapping = {
    "LIC_NO": ["licence_number"],
    "AABL_ID": ["authority_id"],
    "AABV_TYPE": ["record_type"],
    "ISSUE_NO": ["issue_number"],
    "LIC_SIG_DATE": ["signature_date"],
    "FGAC_REGION_CODE": ["region"],
}

OVERRIDE_HEADERS: HeaderMapping = {
    "Permit Number": ["permit_number"],
    "File URL": ["file_url"],
    "NALD Issue_No": ["issue_number"],
    "File ID": ["file_id"],
}

MANUAL_MAPPING_HEADERS: HeaderMapping = {
    "DMS Version Of Licence No.": ["permit_number"],
    "DMS Permit Folder No.": ["permit_number_folder"],
}

FILE_INVENTORY_HEADERS: HeaderMapping = {
    "FileSizeBytes": ["file_size"],
}


def header_mapping_from_report_headers(report_headers: Dict[str, str]) -> HeaderMapping:
    """Invert a field -> header report layout into a header -> [field] mapping."""
    return {header: [field_name] for field_name, header in report_headers.items()}


MATCH_RESULT_HEADER_MAPPING: HeaderMapping = {
    **header_mapping_from_report_headers(MATCH_RESULT_HEADERS),
    # Older workbooks used the version-match spelling
    "NALD Issue No.": ["nald_issue_number"],
}
VERSION_RESULT_HEADER_MAPPING: HeaderMapping = header_mapping_from_report_headers(VERSION_RESULT_HEADERS)

_HEADER_NOISE = re.compile(r"[\s/._\-]")


def normalise_header(header: str) -> str:
    return _HEADER_NOISE.sub("", header or "").lower()


def decode_extract(file_bytes: bytes, source: str = "extract") -> str:
    encodings = ["utf-8-sig", "latin-1", "cp1252"]
    for encoding in encodings:
        try:
            return file_bytes.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ExtractParseError(
        source=source,
        detail="Could not decode file. Supported encodings: UTF-8, Latin-1, CP1252"
    )


def build_column_mapping(
    headers: List[str],
    model: Type[LFBaseModel],
    header_mapping: Optional[HeaderMapping] = None,
    source: str = "extract",
) -> Dict[str, str]:
    """
    Map CSV headers to model fields.

    An explicit mapping entry wins over a header that already reads like the
    field name. Headers matching neither are ignored.
    """
    fields_by_name = {normalise_header(name): name for name in model.model_fields}
    explicit = {normalise_header(header): targets for header, targets in (header_mapping or {}).items()}

    column_mapping: Dict[str, str] = {}
    claimed = set()
    for header in headers:
        if header is None:
            continue
        targets = explicit.get(normalise_header(header))
        if targets is not None:
            if len(targets) >= 2:
                raise AmbiguousMappingError(header, targets)
            if not targets:
                continue
            field_name = targets[0]
            if field_name not in model.model_fields:
                raise ExtractParseError(
                    source=source,
                    detail=f"Column '{header}' is mapped to unknown field '{field_name}'"
                )
        else:
            field_name = fields_by_name.get(normalise_header(header))
            if field_name is None:
                continue
        if field_name in claimed:
            continue
        claimed.add(field_name)
        column_mapping[header] = field_name
    return column_mapping


def read_extract(
    file_bytes: bytes,
    model: Type[M],
    header_mapping: Optional[HeaderMapping] = None,
    source: str = "extract",
) -> List[M]:
    """
    Parse CSV bytes into a list of records.

    Args:
        file_bytes: Raw CSV file bytes.
        model: Record model each row is validated into.
        header_mapping: Optional {header: [field]} mapping for headers that
                        do not read like the field name.
        source: Name of the extract, used in error messages.
    """
    content = decode_extract(file_bytes, source)
    reader = csv.DictReader(io.StringIO(content))
    if not reader.fieldnames:
        raise EmptyExtractError(source)

    column_mapping = build_column_mapping(list(reader.fieldnames), model, header_mapping, source)

    records: List[M] = []
    try:
        for row_number, row in enumerate(reader, start=2):
            if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
                continue
            values = {field_name: row.get(header) for header, field_name in column_mapping.items()}
            try:
                records.append(model.model_validate(values))
            except ValidationError as exc:
                raise ExtractParseError(
                    source=source,
                    detail=f"Row {row_number}: {exc.errors()[0].get('msg', str(exc))}"
                ) from exc
    except csv.Error as exc:
        raise ExtractParseError(source=source, detail=str(exc)) from exc

    if not records:
        raise EmptyExtractError(source)

    logger.debug("Read %d %s records from %s", len(records), model.__name__, source)
    return records
