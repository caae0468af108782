from dataclasses import dataclass

import pymupdf

from docmerge.normalization.exceptions import NormalizationCancelledError
from docmerge.normalization.models import CancelCheck, ExtractedContent, TextBlock, never_cancelled


@dataclass(frozen=True)
class _Line:
    text: str
    font_size: float


class PdfTextLayout:
    """Lays extracted text out onto fixed-size PDF pages.

    Best-effort: the goal is a faithful page count and readable text, not the
    original document's visual layout.
    """

    FONT_NAME = "helv"
    LINE_SPACING = 1.4

    def __init__(
        self,
        *,
        page_width: float = 612.0,
        page_height: float = 792.0,
        margin: float = 50.0,
        font_size: float = 11.0,
    ) -> None:
        if page_width <= 2 * margin or page_height <= 2 * margin:
            raise ValueError("Page margins leave no room for text")
        self._page_width = page_width
        self._page_height = page_height
        self._margin = margin
        self._font_size = font_size

    def render(
        self,
        content: ExtractedContent,
        cancel_check: CancelCheck | None = None,
    ) -> bytes:
        """Render content to PDF bytes; an empty document yields one blank page."""
        should_cancel = cancel_check or never_cancelled
        lines = self._wrap_blocks(content.blocks)
        bottom = self._page_height - self._margin

        doc = pymupdf.open()
        try:
            page = None
            cursor_y = bottom
            for line in lines:
                line_height = line.font_size * self.LINE_SPACING
                if page is None or cursor_y + line_height > bottom:
                    if should_cancel():
                        raise NormalizationCancelledError("Layout cancelled")
                    page = doc.new_page(width=self._page_width, height=self._page_height)
                    cursor_y = self._margin
                cursor_y += line_height
                if line.text:
                    page.insert_text(
                        pymupdf.Point(self._margin, cursor_y),
                        line.text,
                        fontsize=line.font_size,
                        fontname=self.FONT_NAME,
                    )
            if doc.page_count == 0:
                doc.new_page(width=self._page_width, height=self._page_height)
            return doc.tobytes(garbage=3, deflate=True)
        finally:
            doc.close()

    def _wrap_blocks(self, blocks: list[TextBlock]) -> list[_Line]:
        lines: list[_Line] = []
        for block in blocks:
            size = self._block_font_size(block)
            if not block.text.strip():
                lines.append(_Line(text="", font_size=size))
                continue
            for raw_line in block.text.splitlines():
                lines.extend(_Line(text, size) for text in self._wrap(raw_line, size))
            if block.heading_level:
                lines.append(_Line(text="", font_size=self._font_size / 2))
        return lines

    def _block_font_size(self, block: TextBlock) -> float:
        if block.heading_level <= 0:
            return self._font_size
        scale = max(1.0, 1.6 - 0.2 * (block.heading_level - 1))
        return self._font_size * scale

    def _wrap(self, text: str, font_size: float) -> list[str]:
        max_width = self._page_width - 2 * self._margin
        words = text.split()
        if not words:
            return [""]
        wrapped: list[str] = []
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if self._width(candidate, font_size) <= max_width:
                current = candidate
                continue
            if current:
                wrapped.append(current)
            chunks = self._split_long_word(word, font_size, max_width)
            wrapped.extend(chunks[:-1])
            current = chunks[-1]
        if current:
            wrapped.append(current)
        return wrapped

    def _split_long_word(self, word: str, font_size: float, max_width: float) -> list[str]:
        chunks: list[str] = []
        current = ""
        for char in word:
            if current and self._width(current + char, font_size) > max_width:
                chunks.append(current)
                current = char
            else:
                current += char
        chunks.append(current)
        return chunks

    def _width(self, text: str, font_size: float) -> float:
        return pymupdf.get_text_length(text, fontname=self.FONT_NAME, fontsize=font_size)
