from docmerge.config.settings import Settings
from docmerge.normalization.docx_layout import PdfTextLayout
from docmerge.normalization.docx_normalizer import DocxNormalizer
from docmerge.normalization.normalizer import DocumentNormalizer
from docmerge.normalization.pdf_normalizer import PdfNormalizer
from docmerge.pdf.factory import PdfInspectorFactory
from docmerge.registry.models import MimeKind


class NormalizerFactory:
    """Creates the configured document normalizer."""

    @classmethod
    def create(cls, settings: Settings) -> DocumentNormalizer:
        inspector = PdfInspectorFactory.create(settings)
        layout = PdfTextLayout(
            page_width=settings.docx_page_width,
            page_height=settings.docx_page_height,
            margin=settings.docx_margin,
            font_size=settings.docx_font_size,
        )
        return DocumentNormalizer(
            {
                MimeKind.PDF: PdfNormalizer(inspector),
                MimeKind.WORD_PROCESSOR: DocxNormalizer(layout, inspector),
            }
        )
