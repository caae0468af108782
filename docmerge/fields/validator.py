"""Field invariants at placement time and value rules at generation time."""

import math
import re
from collections.abc import Iterable, Mapping
from datetime import date

from docmerge.fields.exceptions import (
    FieldValidationError,
    FieldValueError,
    MissingRequiredFieldError,
)
from docmerge.fields.models import TEXT_LIKE_TYPES, Field, FieldType, FieldValidation
from docmerge.merge.exceptions import EmptyDocumentError, PageBoundsError
from docmerge.tokens.vocabulary import TokenVocabulary

_EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")
_PHONE_PATTERN = re.compile(r"\+?[\d\s().-]+")
_PHONE_MIN_DIGITS = 7
_PHONE_MAX_DIGITS = 15
_CHECKED_VALUES = frozenset({"true", "yes", "on", "1", "checked", "x"})


# Placement-time invariants


def check_geometry(field: Field, min_width: float, min_height: float) -> None:
    coordinates = (field.position.x, field.position.y, field.size.width, field.size.height)
    if not all(math.isfinite(value) for value in coordinates):
        raise FieldValidationError(f"Field geometry {coordinates} must be finite numbers")
    if field.position.x < 0 or field.position.y < 0:
        raise FieldValidationError(
            f"Field position ({field.position.x}, {field.position.y}) must not be negative"
        )
    if field.size.width < min_width:
        raise FieldValidationError(
            f"Field width {field.size.width} is below the minimum {min_width}"
        )
    if field.size.height < min_height:
        raise FieldValidationError(
            f"Field height {field.size.height} is below the minimum {min_height}"
        )


def check_page(field: Field, page_count: int) -> None:
    if page_count == 0:
        raise EmptyDocumentError(
            f"Document {field.document_id} has no pages; fields cannot be placed on it"
        )
    if not 1 <= field.page_in_document <= page_count:
        raise PageBoundsError(
            f"Page {field.page_in_document} is outside document "
            f"{field.document_id} (1..{page_count})"
        )


def check_options(field: Field) -> None:
    if field.type is not FieldType.DROPDOWN:
        if field.options:
            raise FieldValidationError(
                f"Only dropdown fields take options, not '{field.type.value}'"
            )
        return
    options = field.options or []
    if any(not isinstance(option, str) or not option.strip() for option in options):
        raise FieldValidationError("Dropdown options must be non-empty strings")
    if len(set(options)) != len(options):
        raise FieldValidationError("Dropdown options must be unique")
    if field.required and not options:
        raise FieldValidationError("A required dropdown needs at least one option")
    if field.default_value and options and field.default_value not in options:
        raise FieldValidationError(
            f"Default value {field.default_value!r} is not one of the dropdown options"
        )


def check_rules(rules: FieldValidation | None) -> None:
    if rules is None:
        return
    if rules.pattern is not None:
        try:
            re.compile(rules.pattern)
        except re.error as exc:
            raise FieldValidationError(f"Invalid pattern {rules.pattern!r}: {exc}") from exc
    for name in ("min_length", "max_length"):
        value = getattr(rules, name)
        if value is not None and value < 0:
            raise FieldValidationError(f"'{name}' must not be negative")
    if (
        rules.min_length is not None
        and rules.max_length is not None
        and rules.min_length > rules.max_length
    ):
        raise FieldValidationError("'min_length' must not exceed 'max_length'")
    if rules.min is not None and rules.max is not None and rules.min > rules.max:
        raise FieldValidationError("'min' must not exceed 'max'")


def check_merge_field(field: Field, vocabulary: TokenVocabulary | None) -> None:
    if field.merge_field is None or vocabulary is None:
        return
    if field.merge_field not in vocabulary:
        raise FieldValidationError(f"Unknown merge token '{field.merge_field}'")


def check_label(field: Field) -> None:
    if not isinstance(field.label, str):
        raise FieldValidationError("Field label must be a string")


# Generation-time value rules


def validate_value(field: Field, value: object) -> FieldValueError | None:
    """Return the problem with ``value`` for ``field``, or None if it is acceptable."""
    if field.type is FieldType.DROPDOWN and field.required and not field.options:
        return MissingRequiredFieldError(
            field.id, field.label, "required dropdown has no options to choose from"
        )
    if not _is_present(field, value):
        if field.required:
            return MissingRequiredFieldError(field.id, field.label)
        return None
    if field.type is FieldType.CHECKBOX or field.type is FieldType.SIGNATURE:
        return None

    text = str(value).strip()
    if field.type in TEXT_LIKE_TYPES:
        problem = _check_text(text, field.validation) or _check_format(field.type, text)
    elif field.type is FieldType.NUMBER:
        problem = _check_number(text, field.validation)
    elif field.type is FieldType.DATE:
        problem = _check_date(text)
    else:
        problem = _check_choice(text, field.options or [])
    if problem is None:
        return None
    return FieldValueError(field.id, field.label, problem)


def validate_for_export(
    fields: Iterable[Field],
    values: Mapping[str, object],
) -> list[FieldValueError]:
    """Check every field and collect all problems, not only the first."""
    errors: list[FieldValueError] = []
    for field in fields:
        error = validate_value(field, values.get(field.id))
        if error is not None:
            errors.append(error)
    return errors


def _is_present(field: Field, value: object) -> bool:
    if value is None:
        return False
    if field.type is FieldType.CHECKBOX:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in _CHECKED_VALUES
    return bool(str(value).strip())


def _check_text(text: str, rules: FieldValidation | None) -> str | None:
    if rules is None:
        return None
    if rules.min_length is not None and len(text) < rules.min_length:
        return f"must be at least {rules.min_length} characters"
    if rules.max_length is not None and len(text) > rules.max_length:
        return f"must be at most {rules.max_length} characters"
    if rules.pattern is not None and re.fullmatch(rules.pattern, text) is None:
        return f"does not match pattern {rules.pattern!r}"
    return None


def _check_format(field_type: FieldType, text: str) -> str | None:
    if field_type is FieldType.EMAIL and _EMAIL_PATTERN.fullmatch(text) is None:
        return "is not a valid email address"
    if field_type is FieldType.PHONE:
        digits = sum(char.isdigit() for char in text)
        if (
            _PHONE_PATTERN.fullmatch(text) is None
            or not _PHONE_MIN_DIGITS <= digits <= _PHONE_MAX_DIGITS
        ):
            return "is not a valid phone number"
    return None


def _check_number(text: str, rules: FieldValidation | None) -> str | None:
    try:
        number = float(text.replace(",", ""))
    except ValueError:
        return "must be a number"
    if rules is None:
        return None
    if rules.min is not None and number < rules.min:
        return f"must be at least {rules.min:g}"
    if rules.max is not None and number > rules.max:
        return f"must be at most {rules.max:g}"
    return None


def _check_date(text: str) -> str | None:
    try:
        date.fromisoformat(text)
    except ValueError:
        return "must be a date in YYYY-MM-DD format"
    return None


def _check_choice(text: str, options: list[str]) -> str | None:
    if text not in options:
        return f"{text!r} is not one of {options}"
    return None
