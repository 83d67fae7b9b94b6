from __future__ import annotations

import re
from collections.abc import Iterable

NAME_MAX_LENGTH = 170

_WHITESPACE_RE = re.compile(r"\s+")
_FORBIDDEN_PREFIXES = ("-", "~")
_FORBIDDEN_CHARS = {"*", ","}


def normalize_name(value: str | None) -> str:
    """Trim, lowercase and join internal whitespace runs with a single underscore."""
    if value is None:
        return ""
    return _WHITESPACE_RE.sub("_", value.strip()).lower()


def split_other_names(value: str | Iterable[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    tokens: list[str] = []
    for item in value:
        tokens.extend(str(item).split())
    return tokens


def normalize_other_names(value: str | Iterable[str] | None, *, name: str) -> list[str]:
    primary = normalize_name(name)
    seen: set[str] = set()
    out: list[str] = []
    for token in split_other_names(value):
        alias = normalize_name(token)
        if not alias or alias == primary or alias in seen:
            continue
        seen.add(alias)
        out.append(alias)
    return out


def name_errors(name: str) -> list[str]:
    if not name:
        return ["Name cannot be blank"]

    errors: list[str] = []
    if name.startswith(_FORBIDDEN_PREFIXES):
        errors.append(f"'{name}' cannot begin with '{name[0]}'")
    if name.startswith("_"):
        errors.append(f"'{name}' cannot begin with an underscore")
    if name.endswith("_") and not name.startswith("_"):
        errors.append(f"'{name}' cannot end with an underscore")
    if "__" in name:
        errors.append(f"'{name}' cannot contain consecutive underscores")
    forbidden = sorted(_FORBIDDEN_CHARS.intersection(name))
    if forbidden:
        errors.append(f"'{name}' cannot contain {' or '.join(forbidden)}")
    if not name.isprintable():
        errors.append(f"'{name}' must only contain printable characters")
    if len(name) > NAME_MAX_LENGTH:
        errors.append(f"'{name}' cannot be more than {NAME_MAX_LENGTH} characters long")
    return errors
