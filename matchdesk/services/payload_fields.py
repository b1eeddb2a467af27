"""Named extractors for loosely-typed upstream listing payloads.

Provider feeds disagree on key names, so every lookup into ``raw_payload`` is
expressed as an ordered list of ``FieldExtractor`` entries, each tagged with
the provider field it reads. ``first_value`` walks the list and returns the
first result the caller's coercion accepts.
"""

import math
from typing import Any, Callable, Iterable, NamedTuple, Optional


class FieldExtractor(NamedTuple):
    """Provider field name plus a function pulling a candidate from a payload."""
    name: str
    extract: Callable[[dict], Any]


def field(key: str) -> FieldExtractor:
    """Extractor for a single top-level payload key."""
    return FieldExtractor(key, lambda payload: payload.get(key))


def fields(*keys: str) -> list[FieldExtractor]:
    return [field(key) for key in keys]


def first_value(
    extractors: Iterable[FieldExtractor],
    payload: Optional[dict],
    coerce: Callable[[Any], Any] = lambda value: value,
) -> Any:
    """Return the first extracted value that ``coerce`` maps to non-None."""
    if not isinstance(payload, dict):
        return None

    for extractor in extractors:
        value = coerce(extractor.extract(payload))
        if value is not None:
            return value
    return None


def safe_str(value: Any) -> Optional[str]:
    """Trimmed non-empty string, else None. Non-strings are not stringified."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def to_number(value: Any) -> Optional[float]:
    """Finite number from a number or numeric string; None when unparseable."""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None
    else:
        return None

    if isinstance(number, float) and not math.isfinite(number):
        return None
    return number
