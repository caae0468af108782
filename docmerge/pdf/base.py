from abc import ABC, abstractmethod

from docmerge.pdf.models import PdfInfo


class BasePdfInspector(ABC):
    """Contract for all PDF inspection adapters."""

    @abstractmethod
    def inspect(self, pdf_bytes: bytes) -> PdfInfo:
        """Open PDF bytes and report page count and per-page text.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            PdfInfo with the page count and the stripped text of each page.

        Raises:
            PdfInspectionError: if the bytes are not a readable PDF.
        """
