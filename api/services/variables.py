"""Command variable templating.

A variable is written ``{{name}}`` where *name* starts with a letter or an
underscore, followed by up to 15 letters, digits or underscores. Variables
cannot be nested. Everything here is pure: no I/O, no state.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from api.core.errors import ErrorKind, ServiceError

VARIABLE_RE = re.compile(r"\{\{([a-zA-Z_][a-zA-Z0-9_]{0,15})\}\}")

# Any double-brace span, valid or not
_SPAN_RE = re.compile(r"\{\{[^}]*\}\}")
_UNMATCHED_OPEN_RE = re.compile(r"\{\{[^}]*\{\{")
_UNMATCHED_CLOSE_RE = re.compile(r"\}\}[^{]*\}\}")


def extract_variables(content: str) -> list[str]:
    """Return the variable names referenced in *content*, in order of appearance.

    Duplicates are kept. Raises INVALID_TEMPLATE on an unmatched ``{{`` or
    ``}}`` and on any ``{{...}}`` span that is not a valid variable name.
    """
    if _UNMATCHED_OPEN_RE.search(content):
        raise ServiceError(ErrorKind.INVALID_TEMPLATE, "Unmatched '{{'")

    if _UNMATCHED_CLOSE_RE.search(content):
        raise ServiceError(ErrorKind.INVALID_TEMPLATE, "Unmatched '}}'")

    # Delimiters left over once every span is removed have no partner
    remainder = _SPAN_RE.sub(" ", content)
    if "{{" in remainder:
        raise ServiceError(ErrorKind.INVALID_TEMPLATE, "Unmatched '{{'")
    if "}}" in remainder:
        raise ServiceError(ErrorKind.INVALID_TEMPLATE, "Unmatched '}}'")

    for span in _SPAN_RE.findall(content):
        if not VARIABLE_RE.fullmatch(span):
            raise ServiceError(ErrorKind.INVALID_TEMPLATE, f"Invalid variable name: {span}")

    return VARIABLE_RE.findall(content)


def format_content(content: str, variables: Mapping[str, int]) -> str:
    """Replace every ``{{name}}`` in *content* with ``variables[name]``.

    Substituted values are not scanned again. A name missing from
    *variables* means storage and template disagree: MISSING_VARIABLE.
    """

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in variables:
            raise ServiceError(ErrorKind.MISSING_VARIABLE, f"Variable '{name}' not found")
        return str(variables[name])

    return VARIABLE_RE.sub(_substitute, content)


@dataclass(frozen=True)
class VariableDiff:
    to_create: list[str]
    to_delete: list[str]

    @property
    def is_empty(self) -> bool:
        return not self.to_create and not self.to_delete


def unique_names(names: Iterable[str]) -> list[str]:
    """Deduplicate while keeping first-appearance order."""
    return list(dict.fromkeys(names))


def diff_variables(new_names: Iterable[str], existing_names: Iterable[str]) -> VariableDiff:
    """Variables to create and delete so that storage matches *new_names*.

    Names present on both sides are left alone, which keeps their values.
    """
    new = unique_names(new_names)
    existing = unique_names(existing_names)
    new_set, existing_set = set(new), set(existing)
    return VariableDiff(
        to_create=[n for n in new if n not in existing_set],
        to_delete=[n for n in existing if n not in new_set],
    )
