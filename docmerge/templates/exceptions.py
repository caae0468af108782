class TemplateError(Exception):
    """Base exception for template persistence errors."""


class TemplateNotFoundError(TemplateError):
    """Raised when no stored template has the requested id."""


class TemplateFormatError(TemplateError):
    """Raised when a stored template record is malformed."""
