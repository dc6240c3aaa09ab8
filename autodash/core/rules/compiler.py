from __future__ import annotations

from typing import Any, Optional

from .references import check_references
from .schema import Rule, validate_rule
from .types import TypeHierarchy


def compile_rule(raw: Any, *, hierarchy: Optional[TypeHierarchy] = None) -> Rule:
    """Decoded document -> accepted ``Rule``.

    Structure is coerced first; references are checked on the coerced
    rule, so a document is either accepted whole or rejected whole.
    Raises StructuralError or UnresolvedReferenceError.
    """
    rule = validate_rule(raw, hierarchy=hierarchy)
    check_references(rule)
    return rule
