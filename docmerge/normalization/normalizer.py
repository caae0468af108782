"""Dispatches source documents to the normalizer for their kind."""

from docmerge.logging.logger import Log
from docmerge.normalization.base import BaseNormalizer
from docmerge.normalization.exceptions import NormalizationFailure
from docmerge.normalization.models import CancelCheck, NormalizationResult
from docmerge.registry.models import MimeKind


class DocumentNormalizer:
    """Pure ``source -> pdf bytes | failure`` conversion keyed by document kind."""

    def __init__(self, normalizers: dict[MimeKind, BaseNormalizer]) -> None:
        self._normalizers = dict(normalizers)

    def normalize(
        self,
        source_bytes: bytes,
        kind: MimeKind,
        cancel_check: CancelCheck | None = None,
    ) -> NormalizationResult:
        """Convert a source document to PDF.

        Raises:
            NormalizationFailure: if no normalizer handles ``kind`` or the
                conversion fails.
            NormalizationCancelledError: if cancellation was requested.
        """
        normalizer = self._normalizers.get(kind)
        if normalizer is None:
            raise NormalizationFailure(f"No normalizer registered for '{kind.value}'")
        result = normalizer.normalize(source_bytes, cancel_check)
        if result.page_count == 0:
            Log.warning(f"Normalized {kind.value} document has no pages")
        Log.info(
            f"Normalized {kind.value} document: {result.page_count} pages, "
            f"{len(result.pdf_bytes)} bytes"
        )
        return result
