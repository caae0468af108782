from dataclasses import dataclass
from enum import Enum


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"
    SIGNATURE = "signature"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"


TEXT_LIKE_TYPES = frozenset(
    {FieldType.TEXT, FieldType.TEXTAREA, FieldType.EMAIL, FieldType.PHONE}
)


@dataclass(frozen=True)
class Position:
    """Top-left corner in document-space units."""

    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Size:
    """Extent in document-space units."""

    width: float = 0.0
    height: float = 0.0


@dataclass(frozen=True)
class FieldValidation:
    """Optional content rules checked at generation time."""

    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None


@dataclass(frozen=True)
class Field:
    """An interactive field placed on one page of one source document.

    ``page_in_document`` is document-local (1-based). The merged-artifact page
    is never stored here; translate it from the current artifact on demand.
    """

    id: str
    document_id: str
    page_in_document: int
    type: FieldType
    label: str
    position: Position
    size: Size
    required: bool = False
    placeholder: str | None = None
    options: list[str] | None = None
    default_value: str | None = None
    merge_field: str | None = None
    validation: FieldValidation | None = None
    assigned_to: str | None = None
    version: int = 0

    def contains(self, x: float, y: float) -> bool:
        return (
            self.position.x <= x <= self.position.x + self.size.width
            and self.position.y <= y <= self.position.y + self.size.height
        )


EDITABLE_ATTRIBUTES = frozenset(
    {
        "document_id",
        "page_in_document",
        "type",
        "label",
        "position",
        "size",
        "required",
        "placeholder",
        "options",
        "default_value",
        "merge_field",
        "validation",
        "assigned_to",
    }
)

