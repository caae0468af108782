import io
from collections.abc import Callable

import pytest
from docx import Document
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docmerge.fields.store import FieldStore
from docmerge.registry.intake import PDF_MIME_TYPE
from docmerge.registry.models import UploadedFile
from docmerge.registry.registry import DocumentRegistry
from docmerge.tokens.vocabulary import TokenVocabulary

AddNormalized = Callable[[str, int], str]


def _pdf_with_pages(texts: list[str]) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for text in texts:
        if text:
            c.drawString(72, 720, text)
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    return _pdf_with_pages(["Hello PDF World"])


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    return _pdf_with_pages(["Page one content", "Page two content"])


@pytest.fixture()
def three_page_pdf_bytes() -> bytes:
    return _pdf_with_pages(["Terms page 1", "Terms page 2", "Terms page 3"])


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    return _pdf_with_pages([""])


@pytest.fixture()
def sample_docx_bytes() -> bytes:
    """A short agreement: title, paragraphs and a two-column table."""
    document = Document()
    document.add_heading("Sales Agreement", level=1)
    document.add_paragraph("This agreement is made between {{customer_name}} and the dealer.")
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Vehicle"
    table.cell(0, 1).text = "{{vehicle_info}}"
    table.cell(1, 0).text = "Total"
    table.cell(1, 1).text = "{{total_amount}}"
    document.add_paragraph("Signed on {{agreement_date}}.")
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


@pytest.fixture()
def long_docx_bytes() -> bytes:
    """Enough paragraphs to overflow a single page."""
    document = Document()
    for index in range(120):
        document.add_paragraph(f"Clause {index}: the buyer accepts the vehicle as inspected.")
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


@pytest.fixture()
def empty_docx_bytes() -> bytes:
    buf = io.BytesIO()
    Document().save(buf)
    return buf.getvalue()


@pytest.fixture()
def registry() -> DocumentRegistry:
    return DocumentRegistry()


@pytest.fixture()
def store(registry: DocumentRegistry) -> FieldStore:
    return FieldStore(registry, vocabulary=TokenVocabulary.default())


@pytest.fixture()
def add_normalized(registry: DocumentRegistry) -> AddNormalized:
    """Register a PDF and mark it normalized with the given page count."""

    def _add(name: str, page_count: int) -> str:
        result = registry.add_documents(
            [UploadedFile.from_bytes(name, PDF_MIME_TYPE, b"%PDF-1.4 stub")]
        )
        document_id = result.accepted[0].id
        registry.mark_normalized(
            document_id,
            registry.generation(document_id),
            b"%PDF-1.4 stub",
            page_count,
        )
        return document_id

    return _add
