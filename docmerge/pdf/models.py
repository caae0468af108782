from dataclasses import dataclass, field


@dataclass(frozen=True)
class PdfInfo:
    """What downstream consumers need to know about a normalized PDF."""

    page_count: int
    page_texts: list[str] = field(default_factory=list)

    @property
    def has_text(self) -> bool:
        return any(text.strip() for text in self.page_texts)
