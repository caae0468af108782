from collections.abc import Iterable, Mapping

from docmerge.fields.models import Field
from docmerge.fields.validator import validate_value
from docmerge.generation.models import GenerationResult, ResolvedFieldValue
from docmerge.logging.logger import Log
from docmerge.merge.exceptions import MergeError
from docmerge.merge.models import MergedArtifact
from docmerge.merge.translation import translate_page
from docmerge.tokens.resolver import find_tokens, resolve


def generate(
    artifact: MergedArtifact,
    fields: Iterable[Field],
    values_by_token: Mapping[str, object],
    body_text: str = "",
    field_values: Mapping[str, object] | None = None,
) -> GenerationResult:
    """Resolve the body text and every field value against the current artifact.

    A field's value is taken from ``field_values`` (keyed by field id), else
    from its merge token, else from its default. Every field is validated and
    all problems are collected.
    """
    explicit = field_values or {}
    filled = resolve(body_text, values_by_token)
    result = GenerationResult(
        filled_body_text=filled,
        unresolved_tokens=find_tokens(filled),
    )

    for field in fields:
        value = _field_value(field, explicit, values_by_token)
        merged_page: int | None = None
        try:
            merged_page = translate_page(artifact, field)
        except MergeError as exc:
            result.errors.append(exc)
        error = validate_value(field, value)
        if error is not None:
            result.errors.append(error)
        result.field_values[field.id] = ResolvedFieldValue(
            field_id=field.id,
            label=field.label,
            value=value,
            merged_page=merged_page,
        )

    Log.info(
        f"Generated values for {len(result.field_values)} fields",
        errors=len(result.errors),
        unresolved=len(result.unresolved_tokens),
    )
    return result


def _field_value(
    field: Field,
    explicit: Mapping[str, object],
    values_by_token: Mapping[str, object],
) -> object:
    if field.id in explicit:
        return explicit[field.id]
    if field.merge_field is not None and values_by_token.get(field.merge_field) is not None:
        return values_by_token[field.merge_field]
    return field.default_value
