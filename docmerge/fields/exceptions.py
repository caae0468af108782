from docmerge.registry.exceptions import ValidationError


class FieldError(Exception):
    """Base exception for all field errors."""


class FieldNotFoundError(FieldError):
    """Raised when a field id is not present in the store."""


class FieldValidationError(ValidationError, FieldError):
    """Raised when a field placement or edit violates a field invariant."""


class FieldValueError(FieldError):
    """A value supplied for a field does not satisfy its validation rules."""

    def __init__(self, field_id: str, label: str, message: str) -> None:
        super().__init__(f"{label}: {message}")
        self.field_id = field_id
        self.label = label


class MissingRequiredFieldError(FieldValueError):
    """A required field has no value at generation time."""

    def __init__(self, field_id: str, label: str, message: str = "a value is required") -> None:
        super().__init__(field_id, label, message)
