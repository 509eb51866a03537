"""
Lookup indexes over the DMS extract.

Documents are indexed by their own permit number. Documents filed in a
folder that a manual mapping points elsewhere are also indexed under the
mapping's target permit number, so the manual-fix rules can find them.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from licencefinder.models.extracts import DocumentRecord, ManualMapping
from licencefinder.services.errors import AmbiguousMappingError, ConfigError
from licencefinder.services.normalization import permit_key

logger = logging.getLogger(__name__)

MANUAL_MAPPING_TIE_BREAKS = ("longest", "first", "error")


def resolve_manual_mapping(
    permit_number: str,
    mappings: List[ManualMapping],
    tie_break: str = "longest",
) -> Optional[ManualMapping]:
    """
    Choose the manual mapping whose folder key contains the permit number.

    When several folder keys contain it, "longest" prefers the longest folder
    key (first in input order among equals), "first" takes the first in input
    order and "error" raises unless they all point at the same target.
    """
    key = permit_key(permit_number)
    if not key:
        return None

    candidates = [
        mapping for mapping in mappings
        if mapping.permit_number_folder and key in mapping.permit_number_folder.casefold()
    ]
    if not candidates:
        return None
    if len(candidates) == 1 or tie_break == "first":
        return candidates[0]

    targets = {permit_key(mapping.permit_number) for mapping in candidates}
    if tie_break == "error" and len(targets) > 1:
        raise AmbiguousMappingError(
            f"manual mapping of permit {permit_number}",
            [mapping.permit_number_folder for mapping in candidates],
        )
    if len(targets) > 1:
        logger.warning(
            "Permit %s is contained in %d manual mapping folder keys, using the longest",
            permit_number,
            len(candidates),
        )
    return max(candidates, key=lambda mapping: len(mapping.permit_number_folder))


@dataclass
class CandidateIndex:
    by_permit_number: Dict[str, List[DocumentRecord]] = field(default_factory=dict)
    by_manual_fix_permit_number: Dict[str, List[DocumentRecord]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        documents: Iterable[DocumentRecord],
        manual_mappings: Iterable[ManualMapping] = (),
        tie_break: str = "longest",
    ) -> "CandidateIndex":
        if tie_break not in MANUAL_MAPPING_TIE_BREAKS:
            raise ConfigError(
                "manual_mapping_tie_break",
                f"Expected one of {', '.join(MANUAL_MAPPING_TIE_BREAKS)}, got '{tie_break}'",
            )

        mappings = [mapping for mapping in manual_mappings if mapping.permit_number_folder]
        index = cls()
        resolved: Dict[str, Optional[ManualMapping]] = {}

        for document in documents:
            key = permit_key(document.permit_number)
            if not key:
                continue
            index.by_permit_number.setdefault(key, []).append(document)

            if key not in resolved:
                resolved[key] = resolve_manual_mapping(document.permit_number, mappings, tie_break)
            mapping = resolved[key]
            if mapping is not None:
                target = permit_key(mapping.permit_number)
                if target:
                    index.by_manual_fix_permit_number.setdefault(target, []).append(document)

        logger.debug(
            "Indexed %d permits, %d manual-fix permits",
            len(index.by_permit_number),
            len(index.by_manual_fix_permit_number),
        )
        return index

    def documents_for_permit(self, permit_number: Optional[str]) -> List[DocumentRecord]:
        return list(self.by_permit_number.get(permit_key(permit_number), []))

    def manual_fix_documents_for_permit(self, permit_number: Optional[str]) -> List[DocumentRecord]:
        return list(self.by_manual_fix_permit_number.get(permit_key(permit_number), []))

    def contains(self, permit_number: Optional[str]) -> bool:
        key = permit_key(permit_number)
        return bool(key) and (key in self.by_permit_number or key in self.by_manual_fix_permit_number)
