import uuid
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from docmerge.fields import validator
from docmerge.fields.exceptions import FieldNotFoundError, FieldValidationError
from docmerge.fields.models import (
    EDITABLE_ATTRIBUTES,
    Field,
    FieldType,
    FieldValidation,
    Position,
    Size,
)
from docmerge.logging.logger import Log
from docmerge.registry.registry import DocumentRegistry
from docmerge.tokens.vocabulary import TokenVocabulary

_GEOMETRY_ATTRIBUTES = frozenset({"position", "size"})
_PAGE_ATTRIBUTES = frozenset({"document_id", "page_in_document"})
_OPTION_ATTRIBUTES = frozenset({"type", "options", "required", "default_value"})


class FieldStore:
    """The set of placed fields, in z-order (back to front).

    ``update`` is the single entry point for edits. Every applied edit carries
    a version stamp from ``next_stamp``; an edit stamped earlier than the
    field's current version lost the race and is discarded (last write wins).
    """

    def __init__(
        self,
        registry: DocumentRegistry,
        *,
        vocabulary: TokenVocabulary | None = None,
        min_width: float = 50.0,
        min_height: float = 20.0,
        default_width: float = 200.0,
        default_height: float = 40.0,
    ) -> None:
        self._registry = registry
        self._vocabulary = vocabulary
        self._min_width = min_width
        self._min_height = min_height
        self._default_size = Size(width=default_width, height=default_height)
        self._fields: dict[str, Field] = {}
        self._clock = 0
        registry.add_removal_listener(self.delete_all_for_document)
        registry.add_page_count_listener(self.prune_out_of_bounds)

    @property
    def min_width(self) -> float:
        return self._min_width

    @property
    def min_height(self) -> float:
        return self._min_height

    def next_stamp(self) -> int:
        self._clock += 1
        return self._clock

    def create(
        self,
        document_id: str,
        page_in_document: int,
        type: FieldType | str,
        position: Position,
        size: Size | None = None,
        **attributes: Any,
    ) -> Field:
        """Place a new field on a document page.

        Raises:
            DocumentNotFoundError: if the document is unknown.
            EmptyDocumentError: if the document has no pages.
            PageBoundsError: if the page is outside the document.
            FieldValidationError: if any other field invariant is violated.
        """
        unknown = set(attributes) - EDITABLE_ATTRIBUTES
        if unknown:
            raise FieldValidationError(f"Unknown field attributes: {sorted(unknown)}")
        field_type = _coerce_type(type)
        attributes.setdefault("label", f"{field_type.value.title()} Field")
        field = Field(
            id=uuid.uuid4().hex,
            document_id=document_id,
            page_in_document=page_in_document,
            type=field_type,
            position=position,
            size=size if size is not None else self._default_size,
            version=self.next_stamp(),
            **_coerce_attributes(attributes),
        )
        self._validate(field, EDITABLE_ATTRIBUTES)
        self._fields[field.id] = field
        Log.info(
            f"Created {field_type.value} field",
            field=field.id,
            document=document_id,
            page=page_in_document,
        )
        return field

    def update(
        self,
        field_id: str,
        changes: Mapping[str, Any],
        stamp: int | None = None,
    ) -> Field:
        """Apply a partial edit, re-validating every touched invariant.

        The store is unchanged when validation fails.

        Raises:
            FieldNotFoundError: if the field does not exist.
            FieldValidationError / PageBoundsError / EmptyDocumentError /
            DocumentNotFoundError: if the edited field would be invalid.
        """
        current = self.get(field_id)
        touched = set(changes)
        unknown = touched - EDITABLE_ATTRIBUTES
        if unknown:
            raise FieldValidationError(f"Attributes cannot be edited: {sorted(unknown)}")
        if stamp is None:
            stamp = self.next_stamp()
        elif stamp < current.version:
            Log.debug(
                f"Discarding edit stamped {stamp}; field is at version {current.version}",
                field=field_id,
            )
            return current
        else:
            self._clock = max(self._clock, stamp)

        coerced = _coerce_attributes(dict(changes))
        if "type" in coerced:
            coerced["type"] = _coerce_type(coerced["type"])
        candidate = replace(current, version=stamp, **coerced)
        self._validate(candidate, touched)
        self._fields[field_id] = candidate
        return candidate

    def delete(self, field_id: str) -> None:
        if self._fields.pop(field_id, None) is None:
            raise FieldNotFoundError(f"Field {field_id} not found")
        Log.info("Deleted field", field=field_id)

    def get(self, field_id: str) -> Field:
        field = self._fields.get(field_id)
        if field is None:
            raise FieldNotFoundError(f"Field {field_id} not found")
        return field

    def find(self, field_id: str) -> Field | None:
        return self._fields.get(field_id)

    def list_all(self) -> list[Field]:
        return list(self._fields.values())

    def list_by_document(self, document_id: str) -> list[Field]:
        return [f for f in self._fields.values() if f.document_id == document_id]

    def list_on_page(self, document_id: str, page_in_document: int) -> list[Field]:
        return [
            f
            for f in self._fields.values()
            if f.document_id == document_id and f.page_in_document == page_in_document
        ]

    def bring_to_front(self, field_id: str) -> None:
        field = self.get(field_id)
        del self._fields[field_id]
        self._fields[field_id] = field

    def delete_all_for_document(self, document_id: str) -> int:
        doomed = [f.id for f in self._fields.values() if f.document_id == document_id]
        for field_id in doomed:
            del self._fields[field_id]
        if doomed:
            Log.info(f"Deleted {len(doomed)} fields of removed document", document=document_id)
        return len(doomed)

    def prune_out_of_bounds(self, document_id: str, page_count: int) -> int:
        """Drop fields left beyond the last page after a document's content changed."""
        doomed = [
            f.id
            for f in self._fields.values()
            if f.document_id == document_id and f.page_in_document > page_count
        ]
        for field_id in doomed:
            del self._fields[field_id]
        if doomed:
            Log.warning(
                f"Removed {len(doomed)} fields beyond page {page_count}",
                document=document_id,
            )
        return len(doomed)

    def load(self, fields: list[Field]) -> None:
        """Replace the store's contents with already-validated persisted fields."""
        self._fields = {field.id: field for field in fields}
        self._clock = max([self._clock, *(field.version for field in fields)])

    def _validate(self, field: Field, touched: set[str] | frozenset[str]) -> None:
        validator.check_label(field)
        if touched & _GEOMETRY_ATTRIBUTES:
            validator.check_geometry(field, self._min_width, self._min_height)
        if touched & _PAGE_ATTRIBUTES:
            validator.check_page(field, self._registry.page_count(field.document_id))
        if touched & _OPTION_ATTRIBUTES:
            validator.check_options(field)
        if "validation" in touched:
            validator.check_rules(field.validation)
        if "merge_field" in touched:
            validator.check_merge_field(field, self._vocabulary)


def _coerce_type(value: FieldType | str) -> FieldType:
    try:
        return FieldType(value)
    except ValueError as exc:
        raise FieldValidationError(f"Unknown field type '{value}'") from exc


def _coerce_attributes(attributes: dict[str, Any]) -> dict[str, Any]:
    if isinstance(attributes.get("validation"), Mapping):
        try:
            attributes["validation"] = FieldValidation(**attributes["validation"])
        except TypeError as exc:
            raise FieldValidationError(f"Invalid validation rules: {exc}") from exc
    if attributes.get("options") is not None:
        attributes["options"] = list(attributes["options"])
    return attributes
