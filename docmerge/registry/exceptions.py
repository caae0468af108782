class ValidationError(Exception):
    """Base for recoverable, per-item rejections (bad file, bad field bounds)."""


class RegistryError(Exception):
    """Base exception for all document registry errors."""


class DocumentNotFoundError(RegistryError):
    """Raised when a document id is not present in the registry."""


class InvalidOrderError(RegistryError):
    """Raised when a reorder request is not a permutation of the current ids."""


class StaleResultError(RegistryError):
    """Raised when an async result arrives for a removed or replaced document."""


class FileIntakeError(ValidationError, RegistryError):
    """Raised when an uploaded file is rejected before a record is created."""

    def __init__(self, file_name: str, message: str) -> None:
        super().__init__(message)
        self.file_name = file_name


class FileTooLargeError(FileIntakeError):
    """Raised when an uploaded file exceeds the configured size ceiling."""


class UnsupportedKindError(FileIntakeError):
    """Raised when an uploaded file is neither a PDF nor a DOCX document."""
