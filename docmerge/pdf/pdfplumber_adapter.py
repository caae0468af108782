import io

import pdfplumber

from docmerge.pdf.base import BasePdfInspector
from docmerge.pdf.exceptions import PdfInspectionError
from docmerge.pdf.models import PdfInfo


class PdfPlumberAdapter(BasePdfInspector):
    """Inspects PDFs using pdfplumber."""

    def inspect(self, pdf_bytes: bytes) -> PdfInfo:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                texts = [(page.extract_text() or "").strip() for page in pdf.pages]
            return PdfInfo(page_count=len(texts), page_texts=texts)
        except PdfInspectionError:
            raise
        except Exception as exc:
            raise PdfInspectionError(f"pdfplumber inspection failed: {exc}") from exc
