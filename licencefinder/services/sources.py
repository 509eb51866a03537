"""
Collaborator interfaces for the reconciliation run.

The reconciler reads every extract through these interfaces and hands its
results to a sink. Concrete file or SharePoint readers implement them;
InMemorySources serves plain lists, which is what the API and tests use.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List

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
from licencefinder.models.results import MatchResult, VersionMismatchResult


class DocumentSource(ABC):
    """DMS extract, manual mappings and analyst overrides."""

    @abstractmethod
    def read_documents(self) -> List[DocumentRecord]:
        pass

    @abstractmethod
    def read_manual_mappings(self) -> List[ManualMapping]:
        pass

    @abstractmethod
    def read_overrides(self) -> List[OverrideRecord]:
        pass


class LicenceSource(ABC):
    """NALD licences and their issue history."""

    @abstractmethod
    def read_licences(self) -> List[LicenceRecord]:
        pass

    @abstractmethod
    def read_metadata(self) -> List[NaldMetadataRecord]:
        pass


class HistorySource(ABC):
    """Match results of earlier iterations."""

    @abstractmethod
    def read_previous_results(self) -> List[MatchResult]:
        pass

    def read_current_results(self) -> List[MatchResult]:
        return []


class EvidenceSource(ABC):
    """Scraped dates, file classifications and template analysis."""

    @abstractmethod
    def read_file_reader_records(self) -> List[FileReaderRecord]:
        pass

    @abstractmethod
    def read_file_identification_records(self) -> List[FileIdentificationRecord]:
        pass

    def read_template_records(self) -> List[TemplateRecord]:
        return []


class ResultSink(ABC):
    @abstractmethod
    def write(
        self,
        match_results: List[MatchResult],
        version_results: List[VersionMismatchResult],
    ) -> None:
        pass


@dataclass
class InMemorySources(DocumentSource, LicenceSource, HistorySource, EvidenceSource):
    documents: List[DocumentRecord] = field(default_factory=list)
    manual_mappings: List[ManualMapping] = field(default_factory=list)
    overrides: List[OverrideRecord] = field(default_factory=list)
    licences: List[LicenceRecord] = field(default_factory=list)
    metadata: List[NaldMetadataRecord] = field(default_factory=list)
    previous_results: List[MatchResult] = field(default_factory=list)
    current_results: List[MatchResult] = field(default_factory=list)
    file_reader_records: List[FileReaderRecord] = field(default_factory=list)
    file_identification_records: List[FileIdentificationRecord] = field(default_factory=list)
    template_records: List[TemplateRecord] = field(default_factory=list)

    def read_documents(self) -> List[DocumentRecord]:
        return list(self.documents)

    def read_manual_mappings(self) -> List[ManualMapping]:
        return list(self.manual_mappings)

    def read_overrides(self) -> List[OverrideRecord]:
        return list(self.overrides)

    def read_licences(self) -> List[LicenceRecord]:
        return list(self.licences)

    def read_metadata(self) -> List[NaldMetadataRecord]:
        return list(self.metadata)

    def read_previous_results(self) -> List[MatchResult]:
        return list(self.previous_results)

    def read_current_results(self) -> List[MatchResult]:
        return list(self.current_results)

    def read_file_reader_records(self) -> List[FileReaderRecord]:
        return list(self.file_reader_records)

    def read_file_identification_records(self) -> List[FileIdentificationRecord]:
        return list(self.file_identification_records)

    def read_template_records(self) -> List[TemplateRecord]:
        return list(self.template_records)


@dataclass
class InMemoryResultSink(ResultSink):
    match_results: List[MatchResult] = field(default_factory=list)
    version_results: List[VersionMismatchResult] = field(default_factory=list)

    def write(
        self,
        match_results: List[MatchResult],
        version_results: List[VersionMismatchResult],
    ) -> None:
        self.match_results = list(match_results)
        self.version_results = list(version_results)
