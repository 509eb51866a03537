"""Latest-document selection within a tier of candidate documents."""
from typing import Optional, Sequence, Tuple

from licencefinder.models.extracts import DocumentRecord
from licencefinder.services.normalization import parse_sortable_date


def _date_key(document: DocumentRecord):
    return parse_sortable_date(document.document_date), parse_sortable_date(document.upload_date)


def select_latest_document(
    documents: Sequence[DocumentRecord],
) -> Tuple[Optional[DocumentRecord], bool]:
    """
    Pick the latest document by document date, then upload date.

    Missing or unparseable dates sort as the oldest possible date. The sort
    is stable, so among documents sharing both winning dates the first in
    input order is returned, and the flag reports that such a tie exists.
    """
    if not documents:
        return None, False
    if len(documents) == 1:
        return documents[0], False

    ordered = sorted(documents, key=_date_key, reverse=True)
    latest = ordered[0]
    latest_key = _date_key(latest)
    tied = sum(1 for document in ordered if _date_key(document) == latest_key)
    return latest, tied > 1
