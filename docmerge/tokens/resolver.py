"""Finds, highlights and substitutes ``{{token}}`` placeholders in template text."""

import re
from collections.abc import Mapping

from docmerge.logging.logger import Log
from docmerge.tokens.vocabulary import TokenVocabulary

TOKEN_PATTERN = re.compile(r"\{\{\s*([^{}\s][^{}]*?)\s*\}\}")
HIGHLIGHT_CLASS = "merge-token"


def find_tokens(text: str) -> list[str]:
    """Return the distinct token names referenced in ``text``, in first-use order."""
    seen: dict[str, None] = {}
    for match in TOKEN_PATTERN.finditer(text):
        seen.setdefault(match.group(1), None)
    return list(seen)


def highlight(text: str, css_class: str = HIGHLIGHT_CLASS) -> str:
    """Wrap each token occurrence in a span; every other character is kept as-is."""
    return TOKEN_PATTERN.sub(
        lambda match: f'<span class="{css_class}">{match.group(0)}</span>',
        text,
    )


def resolve(text: str, values: Mapping[str, object]) -> str:
    """Substitute known tokens; unknown ones stay as literal placeholders.

    Values may themselves contain placeholders and are expanded recursively.
    A token that reappears inside its own expansion is a cycle: that inner
    placeholder is dropped with a warning. Substitution repeats until the
    text stops changing, so the result is a fixed point and ``resolve`` is
    idempotent.
    """
    known = {name: str(value) for name, value in values.items() if value is not None}
    if not known:
        return text

    seen: set[str] = set()
    current = text
    while True:
        expanded = _expand(current, known, ())
        if expanded == current:
            return current
        if expanded in seen:
            # Placeholders rebuilt across value boundaries keep cycling.
            Log.warning("Merge token values never settle; dropping cyclic placeholders")
            return _strip_known(expanded, known)
        seen.add(expanded)
        current = expanded


def _expand(text: str, known: Mapping[str, str], path: tuple[str, ...]) -> str:
    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in known:
            return match.group(0)
        if name in path:
            Log.warning(f"Merge token '{name}' refers back to itself; dropping the placeholder")
            return ""
        return _expand(known[name], known, (*path, name))

    return TOKEN_PATTERN.sub(_substitute, text)


def _strip_known(text: str, known: Mapping[str, str]) -> str:
    while True:
        stripped = TOKEN_PATTERN.sub(
            lambda match: "" if match.group(1) in known else match.group(0), text
        )
        if stripped == text:
            return text
        text = stripped


def has_unresolved_tokens(text: str) -> bool:
    return TOKEN_PATTERN.search(text) is not None


def unknown_tokens(text: str, vocabulary: TokenVocabulary) -> list[str]:
    return [name for name in find_tokens(text) if name not in vocabulary]
