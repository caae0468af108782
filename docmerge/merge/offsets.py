from collections.abc import Sequence

from docmerge.merge.models import MergedArtifact
from docmerge.registry.models import DocumentStatus, SourceDocument


def project_artifact(documents: Sequence[SourceDocument]) -> MergedArtifact:
    """Compute the merged artifact for documents in merge order.

    Always a full recomputation: offsets are never patched incrementally.
    """
    ordered_ids: list[str] = []
    offsets: dict[str, int] = {}
    page_counts: dict[str, int] = {}
    skipped: list[str] = []
    pending = False
    running_total = 0

    for document in documents:
        if document.status is DocumentStatus.FAILED:
            skipped.append(document.id)
            continue
        if document.status is DocumentStatus.RAW:
            pending = True
        ordered_ids.append(document.id)
        offsets[document.id] = running_total
        page_counts[document.id] = document.page_count
        running_total += document.page_count

    return MergedArtifact(
        ordered_document_ids=ordered_ids,
        page_offsets=offsets,
        page_counts=page_counts,
        total_pages=running_total,
        skipped_document_ids=skipped,
        pending=pending,
    )
