import pymupdf

from docmerge.pdf.base import BasePdfInspector
from docmerge.pdf.exceptions import PdfInspectionError
from docmerge.pdf.models import PdfInfo


class PyMuPdfAdapter(BasePdfInspector):
    """Inspects PDFs using PyMuPDF."""

    def inspect(self, pdf_bytes: bytes) -> PdfInfo:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                texts = [page.get_text().strip() for page in doc]
            return PdfInfo(page_count=len(texts), page_texts=texts)
        except PdfInspectionError:
            raise
        except Exception as exc:
            raise PdfInspectionError(f"pymupdf inspection failed: {exc}") from exc
