import io

from docx import Document
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

from docmerge.normalization.exceptions import NormalizationFailure
from docmerge.normalization.models import ExtractedContent, TextBlock

_TABLE_CELL_SEPARATOR = " | "


def extract_docx(source_bytes: bytes) -> ExtractedContent:
    """Read paragraphs and table rows from a DOCX file in body order.

    Raises:
        NormalizationFailure: if the bytes are not a readable DOCX package.
    """
    try:
        document = Document(io.BytesIO(source_bytes))
    except Exception as exc:
        raise NormalizationFailure(f"Unreadable DOCX document: {exc}") from exc

    blocks: list[TextBlock] = []
    for child in document.element.body.iterchildren():
        if child.tag == qn("w:p"):
            paragraph = Paragraph(child, document)
            blocks.append(
                TextBlock(text=paragraph.text, heading_level=_heading_level(paragraph))
            )
        elif child.tag == qn("w:tbl"):
            blocks.extend(_table_blocks(Table(child, document)))
    return ExtractedContent(blocks=blocks)


def _heading_level(paragraph: Paragraph) -> int:
    style_name = paragraph.style.name if paragraph.style is not None else ""
    if style_name == "Title":
        return 1
    if style_name.startswith("Heading "):
        suffix = style_name.removeprefix("Heading ").strip()
        return int(suffix) if suffix.isdigit() else 1
    return 0


def _table_blocks(table: Table) -> list[TextBlock]:
    blocks: list[TextBlock] = []
    for row in table.rows:
        cells: list[str] = []
        for cell in row.cells:
            text = cell.text.strip()
            # Horizontally merged cells are reported once per grid column.
            if cells and cells[-1] == text:
                continue
            cells.append(text)
        line = _TABLE_CELL_SEPARATOR.join(cells).strip()
        if line:
            blocks.append(TextBlock(text=line, from_table=True))
    return blocks
