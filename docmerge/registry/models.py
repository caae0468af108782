from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import BinaryIO


class MimeKind(str, Enum):
    PDF = "pdf"
    WORD_PROCESSOR = "docx"


class DocumentStatus(str, Enum):
    RAW = "raw"
    NORMALIZED = "normalized"
    FAILED = "failed"


@dataclass
class SourceDocument:
    """An uploaded source document (metadata only, no bytes)."""

    id: str
    original_name: str
    mime_kind: MimeKind
    byte_size: int
    page_count: int = 0
    status: DocumentStatus = DocumentStatus.RAW
    failure_reason: str | None = None
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def needs_substitute(self) -> bool:
        """True when conversion failed and the user should supply a PDF instead."""
        return self.status is DocumentStatus.FAILED


@dataclass
class UploadedFile:
    """A file handed over by the file picker.

    ``size`` is the declared size and is checked before any byte is read.
    Content comes from exactly one of ``data``, ``stream`` or ``path``.
    """

    name: str
    mime_type: str
    size: int
    data: bytes | None = None
    stream: BinaryIO | None = None
    path: Path | None = None

    @classmethod
    def from_bytes(cls, name: str, mime_type: str, data: bytes) -> "UploadedFile":
        return cls(name=name, mime_type=mime_type, size=len(data), data=data)

    @classmethod
    def from_path(cls, path: Path, mime_type: str = "") -> "UploadedFile":
        return cls(
            name=path.name,
            mime_type=mime_type,
            size=path.stat().st_size,
            path=path,
        )

    def read(self) -> bytes:
        if self.data is not None:
            return self.data
        if self.stream is not None:
            self.data = self.stream.read()
            return self.data
        if self.path is not None:
            return self.path.read_bytes()
        raise ValueError(f"Uploaded file '{self.name}' has no content")

    def close(self) -> None:
        """Release the in-memory buffer and any open stream."""
        self.data = None
        if self.stream is not None:
            self.stream.close()
            self.stream = None


@dataclass
class AddDocumentsResult:
    """Outcome of a batch upload: accepted records and per-file rejections."""

    accepted: list[SourceDocument] = field(default_factory=list)
    rejected: list[Exception] = field(default_factory=list)


RemovalListener = Callable[[str], None]
PageCountListener = Callable[[str, int], None]
