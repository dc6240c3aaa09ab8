from __future__ import annotations

from typing import Any, Callable, Dict, Mapping

MAX_SCORE = 100

# Score injected into every metric, dimension, filter and card that omits one.
DEFAULT_SCORE: Dict[str, Any] = {"score": MAX_SCORE}


def _single_entry(raw: Any):
    if isinstance(raw, Mapping) and len(raw) == 1:
        return next(iter(raw.items()))
    return None


def with_defaults(raw: Any, defaults: Mapping[str, Any]) -> Any:
    """Merge ``defaults`` underneath the definition of ``{identifier: definition}``."""
    entry = _single_entry(raw)
    if entry is None:
        return raw
    identifier, definition = entry
    if not isinstance(definition, Mapping):
        return raw
    return {identifier: {**defaults, **definition}}


def expand(raw: Any, key_name: str, defaults: Mapping[str, Any]) -> Any:
    """
    Expand ``{identifier: value}`` into ``{identifier: {key_name: value, **defaults}}``
    when ``value`` is a bare scalar; full definitions only get the defaults.

    Anything that is not a one-entry mapping is returned unchanged so the
    schema layer can report it.
    """
    entry = _single_entry(raw)
    if entry is None:
        return raw
    identifier, definition = entry
    if not isinstance(definition, Mapping):
        definition = {key_name: definition}
    return with_defaults({identifier: definition}, defaults)


def expander(key_name: str, defaults: Mapping[str, Any] = DEFAULT_SCORE) -> Callable[[Any], Any]:
    def _expand(raw: Any) -> Any:
        return expand(raw, key_name, defaults)

    return _expand


def defaulter(defaults: Mapping[str, Any] = DEFAULT_SCORE) -> Callable[[Any], Any]:
    def _with_defaults(raw: Any) -> Any:
        return with_defaults(raw, defaults)

    return _with_defaults
