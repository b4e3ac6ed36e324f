"""Shared parsing helpers for config values and request payload normalization."""

from __future__ import annotations


_TRUE_TOKENS = frozenset({"1", "true", "yes", "on"})
_FALSE_TOKENS = frozenset({"0", "false", "no", "off"})


def normalize_optional_string(value: object) -> str | None:
    """Return a stripped string, or `None` for missing or blank values."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_boolean(value: object, field_name: str) -> bool:
    """Parse a boolean from a bool or a textual token (`true`/`false`, `1`/`0`, `yes`/`no`).

    Raises:
        ValueError: If the token is not an accepted boolean form.
    """

    if isinstance(value, bool):
        return value
    normalized = normalize_optional_string(value)
    if normalized is not None:
        token = normalized.lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
    raise ValueError(
        f"`{field_name}` must be a boolean value (`true`/`false`, `1`/`0`, `yes`/`no`)."
    )


def parse_positive_int(value: object, field_name: str) -> int:
    """Parse a strictly positive integer from an int or a numeric string.

    Raises:
        ValueError: If the value is missing, non-numeric, boolean, or not positive.
    """

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive integer.")
    if isinstance(value, int):
        parsed = value
    else:
        normalized = normalize_optional_string(value)
        if normalized is None or not normalized.lstrip("+").isdigit():
            raise ValueError(f"`{field_name}` must be a positive integer.")
        parsed = int(normalized)
    if parsed <= 0:
        raise ValueError(f"`{field_name}` must be a positive integer.")
    return parsed


def parse_positive_float(value: object, field_name: str) -> float:
    """Parse a strictly positive float from a number or numeric string."""

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive number.")
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"`{field_name}` must be a positive number.") from exc
    if parsed <= 0.0:
        raise ValueError(f"`{field_name}` must be a positive number.")
    return parsed


def camel_case(name: str) -> str:
    """Convert a snake_case field name to the camelCase key used in JSON payloads."""

    head, *tail = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in tail)
