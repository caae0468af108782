class MergeError(Exception):
    """Base exception for merge engine errors."""


class NoDocumentsError(MergeError):
    """Raised when page translation is attempted on an empty artifact."""


class DocumentNotInArtifactError(MergeError):
    """Raised when a document is unknown to, or skipped by, the artifact."""


class PageBoundsError(MergeError):
    """Raised when a page number lies outside its document or the artifact."""


class EmptyDocumentError(MergeError):
    """Raised when fields are placed on a document with zero pages."""


class ConcatenationError(MergeError):
    """Raised when normalized PDFs cannot be concatenated."""


class ArtifactPendingError(MergeError):
    """Raised when concatenation is requested while page counts are provisional."""
