from pathlib import PurePath

from docmerge.registry.exceptions import FileTooLargeError, UnsupportedKindError
from docmerge.registry.models import MimeKind, UploadedFile

PDF_MIME_TYPE = "application/pdf"
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

_KIND_BY_MIME = {
    PDF_MIME_TYPE: MimeKind.PDF,
    DOCX_MIME_TYPE: MimeKind.WORD_PROCESSOR,
}
_KIND_BY_SUFFIX = {
    ".pdf": MimeKind.PDF,
    ".docx": MimeKind.WORD_PROCESSOR,
}
# Browsers report these when they cannot sniff the type; fall back to the suffix.
_GENERIC_MIME_TYPES = frozenset({"", "application/octet-stream"})


class FileIntake:
    """Synchronous kind and size checks run before a SourceDocument exists."""

    DEFAULT_MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

    def __init__(self, max_file_size_bytes: int | None = None) -> None:
        self._max_size = (
            max_file_size_bytes
            if max_file_size_bytes is not None
            else self.DEFAULT_MAX_FILE_SIZE_BYTES
        )

    @property
    def max_file_size_bytes(self) -> int:
        return self._max_size

    def validate(self, file: UploadedFile) -> MimeKind:
        """Return the document kind for an acceptable file.

        Raises:
            UnsupportedKindError: if the file is not a PDF or DOCX document.
            FileTooLargeError: if the declared size exceeds the ceiling.
        """
        kind = detect_kind(file.name, file.mime_type)
        if kind is None:
            raise UnsupportedKindError(
                file.name,
                f"'{file.name}' has unsupported type '{file.mime_type}'; "
                "only PDF and DOCX files are allowed",
            )
        if file.size > self._max_size:
            raise FileTooLargeError(
                file.name,
                f"'{file.name}' is {file.size} bytes; "
                f"files must be at most {self._max_size} bytes",
            )
        return kind


def detect_kind(file_name: str, mime_type: str) -> MimeKind | None:
    normalized = (mime_type or "").split(";")[0].strip().lower()
    if normalized in _KIND_BY_MIME:
        return _KIND_BY_MIME[normalized]
    if normalized in _GENERIC_MIME_TYPES:
        return _KIND_BY_SUFFIX.get(PurePath(file_name).suffix.lower())
    return None
