class NormalizationError(Exception):
    """Base exception for all normalization errors."""


class NormalizationFailure(NormalizationError):
    """Raised when a source document cannot be turned into a usable PDF."""


class NormalizationCancelledError(NormalizationError):
    """Raised when a cooperative cancel request is observed between pages."""
