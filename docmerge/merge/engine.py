from collections.abc import Callable, Sequence

import pymupdf

from docmerge.logging.logger import Log
from docmerge.merge.exceptions import (
    ArtifactPendingError,
    ConcatenationError,
    MergeError,
)
from docmerge.merge.models import MergedArtifact
from docmerge.merge.offsets import project_artifact
from docmerge.normalization.exceptions import NormalizationCancelledError
from docmerge.normalization.models import CancelCheck, never_cancelled
from docmerge.registry.models import SourceDocument

PdfSource = Callable[[str], bytes | None]


class MergeEngine:
    """Builds the merged artifact and owns the latest merged PDF bytes.

    Pipeline: project offsets -> concatenate normalized PDFs in order.
    Superseded merged bytes are released as soon as a new result exists.
    """

    def __init__(self) -> None:
        self._latest_artifact: MergedArtifact | None = None
        self._latest_bytes: bytes | None = None

    @property
    def latest_artifact(self) -> MergedArtifact | None:
        return self._latest_artifact

    @property
    def latest_bytes(self) -> bytes | None:
        return self._latest_bytes

    def build_merged_artifact(
        self, ordered_documents: Sequence[SourceDocument]
    ) -> MergedArtifact:
        artifact = project_artifact(ordered_documents)
        if self._latest_artifact != artifact:
            self.release()
        self._latest_artifact = artifact
        Log.info(
            f"Merged artifact: {len(artifact.ordered_document_ids)} documents, "
            f"{artifact.total_pages} pages",
            skipped=len(artifact.skipped_document_ids),
            pending=artifact.pending,
        )
        return artifact

    def concatenate(
        self,
        artifact: MergedArtifact,
        pdf_source: PdfSource,
        cancel_check: CancelCheck | None = None,
    ) -> bytes:
        """Concatenate normalized PDFs in artifact order into one PDF.

        Raises:
            ArtifactPendingError: if the artifact still has provisional pages.
            ConcatenationError: if a document's PDF is missing or unreadable,
                or the result disagrees with the artifact's page total.
            NormalizationCancelledError: if cancellation was requested.
        """
        if artifact.pending:
            raise ArtifactPendingError("Wait for normalization before concatenating")
        should_cancel = cancel_check or never_cancelled

        merged = pymupdf.open()
        try:
            for document_id in artifact.ordered_document_ids:
                if should_cancel():
                    raise NormalizationCancelledError("Concatenation cancelled")
                if artifact.page_counts[document_id] == 0:
                    continue
                self._append(merged, document_id, pdf_source(document_id))
            if merged.page_count != artifact.total_pages:
                raise ConcatenationError(
                    f"Merged PDF has {merged.page_count} pages, "
                    f"expected {artifact.total_pages}"
                )
            if merged.page_count == 0:
                result = b""
            else:
                result = merged.tobytes(garbage=3, deflate=True)
        except MergeError:
            raise
        except NormalizationCancelledError:
            raise
        except Exception as exc:
            raise ConcatenationError(f"pymupdf concatenation failed: {exc}") from exc
        finally:
            merged.close()

        self.release()
        self._latest_artifact = artifact
        self._latest_bytes = result
        Log.info(f"Concatenated {artifact.total_pages} pages ({len(result)} bytes)")
        return result

    def release(self) -> None:
        """Drop the retained merged bytes."""
        if self._latest_bytes is not None:
            Log.debug(f"Releasing {len(self._latest_bytes)} merged bytes")
        self._latest_bytes = None

    @staticmethod
    def _append(merged: "pymupdf.Document", document_id: str, pdf_bytes: bytes | None) -> None:
        if not pdf_bytes:
            raise ConcatenationError(f"Document {document_id} has no normalized PDF")
        with pymupdf.open(stream=pdf_bytes, filetype="pdf") as source:  # type: ignore[no-untyped-call]
            merged.insert_pdf(source)
