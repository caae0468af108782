from docmerge.normalization.base import BaseNormalizer
from docmerge.normalization.exceptions import NormalizationCancelledError, NormalizationFailure
from docmerge.normalization.models import CancelCheck, NormalizationResult
from docmerge.pdf.base import BasePdfInspector
from docmerge.pdf.exceptions import PdfInspectionError


class PdfNormalizer(BaseNormalizer):
    """PDF sources are already normalized; only verify and count pages."""

    def __init__(self, inspector: BasePdfInspector) -> None:
        self._inspector = inspector

    def normalize(
        self,
        source_bytes: bytes,
        cancel_check: CancelCheck | None = None,
    ) -> NormalizationResult:
        if cancel_check is not None and cancel_check():
            raise NormalizationCancelledError("Normalization cancelled before start")
        try:
            info = self._inspector.inspect(source_bytes)
        except PdfInspectionError as exc:
            raise NormalizationFailure(str(exc)) from exc
        return NormalizationResult(
            pdf_bytes=source_bytes,
            page_count=info.page_count,
            text_present=info.has_text,
        )
