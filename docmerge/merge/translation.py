from typing import Protocol

from docmerge.merge.exceptions import (
    DocumentNotInArtifactError,
    NoDocumentsError,
    PageBoundsError,
)
from docmerge.merge.models import MergedArtifact, MergedPage


class PagePlacement(Protocol):
    document_id: str
    page_in_document: int


def translate_page(artifact: MergedArtifact, placement: PagePlacement) -> int:
    """Map a document-local page to its 1-based page in the merged artifact.

    Always computed from the artifact passed in; callers must not store the
    result on the field, since any reorder or removal invalidates it.

    Raises:
        NoDocumentsError: if the artifact has no documents.
        DocumentNotInArtifactError: if the document is unknown or was skipped.
        PageBoundsError: if the page lies outside the document.
    """
    if artifact.is_empty:
        raise NoDocumentsError("Cannot translate pages: the merged artifact is empty")
    offset = artifact.page_offsets.get(placement.document_id)
    if offset is None:
        raise DocumentNotInArtifactError(
            f"Document {placement.document_id} is not part of the merged artifact"
        )
    page_count = artifact.page_counts[placement.document_id]
    if not 1 <= placement.page_in_document <= page_count:
        raise PageBoundsError(
            f"Page {placement.page_in_document} is outside document "
            f"{placement.document_id} (1..{page_count})"
        )
    return offset + placement.page_in_document


def locate_merged_page(artifact: MergedArtifact, merged_page: int) -> MergedPage:
    """Resolve a 1-based merged page back to (document, page in document).

    Raises:
        NoDocumentsError: if the artifact has no documents.
        PageBoundsError: if ``merged_page`` is outside 1..total_pages.
    """
    if artifact.is_empty:
        raise NoDocumentsError("Cannot locate pages: the merged artifact is empty")
    if not 1 <= merged_page <= artifact.total_pages:
        raise PageBoundsError(
            f"Merged page {merged_page} is outside 1..{artifact.total_pages}"
        )
    for document_id in artifact.ordered_document_ids:
        offset = artifact.page_offsets[document_id]
        if offset < merged_page <= offset + artifact.page_counts[document_id]:
            return MergedPage(document_id=document_id, page_in_document=merged_page - offset)
    raise PageBoundsError(f"Merged page {merged_page} belongs to no document")
