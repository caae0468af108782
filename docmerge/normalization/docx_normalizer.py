from docmerge.logging.logger import Log
from docmerge.normalization.base import BaseNormalizer
from docmerge.normalization.docx_extractor import extract_docx
from docmerge.normalization.docx_layout import PdfTextLayout
from docmerge.normalization.exceptions import NormalizationCancelledError, NormalizationFailure
from docmerge.normalization.models import CancelCheck, NormalizationResult, never_cancelled
from docmerge.pdf.base import BasePdfInspector
from docmerge.pdf.exceptions import PdfInspectionError


class DocxNormalizer(BaseNormalizer):
    """Converts DOCX sources: extract text blocks, then lay them out as PDF."""

    def __init__(self, layout: PdfTextLayout, inspector: BasePdfInspector) -> None:
        self._layout = layout
        self._inspector = inspector

    def normalize(
        self,
        source_bytes: bytes,
        cancel_check: CancelCheck | None = None,
    ) -> NormalizationResult:
        should_cancel = cancel_check or never_cancelled
        content = extract_docx(source_bytes)
        Log.debug(f"Extracted {len(content.blocks)} blocks from DOCX source")
        if should_cancel():
            raise NormalizationCancelledError("Normalization cancelled after extraction")

        try:
            pdf_bytes = self._layout.render(content, should_cancel)
        except NormalizationCancelledError:
            raise
        except Exception as exc:
            raise NormalizationFailure(f"DOCX layout failed: {exc}") from exc

        try:
            info = self._inspector.inspect(pdf_bytes)
        except PdfInspectionError as exc:
            raise NormalizationFailure(f"Converted PDF is unreadable: {exc}") from exc

        if content.has_text and not info.has_text:
            Log.warning("Converted PDF lost the source text")
        return NormalizationResult(
            pdf_bytes=pdf_bytes,
            page_count=info.page_count,
            text_present=info.has_text,
        )
