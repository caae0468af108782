"""Converts template records to and from plain JSON-ready dicts."""

from datetime import datetime
from typing import Any

from docmerge.fields.models import Field, FieldType, FieldValidation, Position, Size
from docmerge.registry.models import DocumentStatus, MimeKind, SourceDocument
from docmerge.templates.exceptions import TemplateFormatError
from docmerge.templates.models import TemplateCategory, TemplateRecord, TemplateStatus


def template_to_dict(template: TemplateRecord) -> dict[str, Any]:
    return {
        "id": template.id,
        "name": template.name,
        "category": template.category.value,
        "description": template.description,
        "files": [document_to_dict(d) for d in template.files],
        "fields": [field_to_dict(f) for f in template.fields],
        "status": template.status.value,
        "body_text": template.body_text,
        "created_at": template.created_at.isoformat(),
        "updated_at": template.updated_at.isoformat(),
    }


def document_to_dict(document: SourceDocument) -> dict[str, Any]:
    return {
        "id": document.id,
        "original_name": document.original_name,
        "mime_kind": document.mime_kind.value,
        "byte_size": document.byte_size,
        "page_count": document.page_count,
        "status": document.status.value,
        "failure_reason": document.failure_reason,
        "uploaded_at": document.uploaded_at.isoformat(),
    }


def field_to_dict(field: Field) -> dict[str, Any]:
    validation = None
    if field.validation is not None:
        validation = {
            "pattern": field.validation.pattern,
            "min_length": field.validation.min_length,
            "max_length": field.validation.max_length,
            "min": field.validation.min,
            "max": field.validation.max,
        }
    return {
        "id": field.id,
        "document_id": field.document_id,
        "page_in_document": field.page_in_document,
        "type": field.type.value,
        "label": field.label,
        "placeholder": field.placeholder,
        "required": field.required,
        "position": {"x": field.position.x, "y": field.position.y},
        "size": {"width": field.size.width, "height": field.size.height},
        "options": list(field.options) if field.options is not None else None,
        "default_value": field.default_value,
        "merge_field": field.merge_field,
        "validation": validation,
        "assigned_to": field.assigned_to,
        "version": field.version,
    }


def template_from_dict(data: dict[str, Any]) -> TemplateRecord:
    """Rebuild a template record.

    Raises:
        TemplateFormatError: on any missing or ill-typed value.
    """
    try:
        return TemplateRecord(
            id=str(data["id"]),
            name=str(data["name"]),
            category=TemplateCategory(data.get("category", "custom")),
            description=str(data.get("description") or ""),
            files=[document_from_dict(d) for d in data.get("files", [])],
            fields=[field_from_dict(f) for f in data.get("fields", [])],
            status=TemplateStatus(data.get("status", "draft")),
            body_text=str(data.get("body_text") or ""),
            created_at=_parse_datetime(data["created_at"]),
            updated_at=_parse_datetime(data["updated_at"]),
        )
    except TemplateFormatError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise TemplateFormatError(f"Malformed template record: {exc!r}") from exc


def document_from_dict(data: dict[str, Any]) -> SourceDocument:
    try:
        return SourceDocument(
            id=str(data["id"]),
            original_name=str(data["original_name"]),
            mime_kind=MimeKind(data["mime_kind"]),
            byte_size=int(data["byte_size"]),
            page_count=int(data["page_count"]),
            status=DocumentStatus(data["status"]),
            failure_reason=data.get("failure_reason"),
            uploaded_at=_parse_datetime(data["uploaded_at"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TemplateFormatError(f"Malformed document record: {exc!r}") from exc


def field_from_dict(data: dict[str, Any]) -> Field:
    try:
        raw_validation = data.get("validation")
        options = data.get("options")
        return Field(
            id=str(data["id"]),
            document_id=str(data["document_id"]),
            page_in_document=int(data["page_in_document"]),
            type=FieldType(data["type"]),
            label=str(data["label"]),
            placeholder=data.get("placeholder"),
            required=bool(data.get("required", False)),
            position=Position(**data["position"]),
            size=Size(**data["size"]),
            options=[str(o) for o in options] if options is not None else None,
            default_value=data.get("default_value"),
            merge_field=data.get("merge_field"),
            validation=FieldValidation(**raw_validation) if raw_validation else None,
            assigned_to=data.get("assigned_to"),
            version=int(data.get("version", 0)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TemplateFormatError(f"Malformed field record: {exc!r}") from exc


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))
