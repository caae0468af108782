from collections.abc import Callable
from dataclasses import dataclass, field

CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class TextBlock:
    """One paragraph-level unit extracted from a word-processor document."""

    text: str
    heading_level: int = 0
    from_table: bool = False


@dataclass(frozen=True)
class ExtractedContent:
    """Plain structured representation of a word-processor document."""

    blocks: list[TextBlock] = field(default_factory=list)

    @property
    def has_text(self) -> bool:
        return any(block.text.strip() for block in self.blocks)


@dataclass(frozen=True)
class NormalizationResult:
    """Output of the normalization step."""

    pdf_bytes: bytes
    page_count: int
    text_present: bool = False


def never_cancelled() -> bool:
    return False
