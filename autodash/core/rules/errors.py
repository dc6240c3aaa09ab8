"""Rule compilation errors.

Every failure carries the offending value and the expected shape so the
loader can log a useful summary and move on to the next document.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError


class RuleError(Exception):
    kind = "rule"

    def __init__(self, message: str, *, source: Optional[str] = None):
        self.source = source
        super().__init__(message)

    def details(self) -> List[Dict[str, Any]]:
        return []

    def payload(self) -> Dict[str, Any]:
        """Client-facing body shared by the API and the error middleware."""
        return {"valid": False, "kind": self.kind, "message": str(self), "errors": self.details()}

    def __str__(self) -> str:
        msg = super().__str__()
        return f"{self.source}: {msg}" if self.source else msg


class DecodeError(RuleError):
    """The document could not be read or is not valid YAML."""

    kind = "decode"

    def details(self) -> List[Dict[str, Any]]:
        return [{"loc": "<document>", "value": self.source, "error": self.args[0] if self.args else ""}]


class StructuralError(RuleError):
    """A required key is missing, an unknown key is present, or a value does not fit its shape."""

    kind = "structural"

    def __init__(self, issues: List[Dict[str, Any]], *, source: Optional[str] = None):
        self.issues = list(issues)
        super().__init__(
            f"{len(self.issues)} structural issue(s); first at "
            f"{_format_loc(self.issues[0]['loc']) if self.issues else '<root>'}",
            source=source,
        )

    @classmethod
    def from_validation_error(cls, exc: ValidationError, *, source: Optional[str] = None) -> "StructuralError":
        issues = [
            {
                "loc": tuple(err.get("loc", ())),
                "value": err.get("input"),
                "error": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors(include_url=False)
        ]
        return cls(issues, source=source)

    def details(self) -> List[Dict[str, Any]]:
        return [
            {"loc": _format_loc(i["loc"]), "value": i["value"], "error": i["error"]}
            for i in self.issues
        ]


class UnresolvedReferenceError(RuleError):
    """A card, order-by key or expression names a dimension/metric/filter that is not defined."""

    kind = "reference"

    def __init__(self, unresolved: List[Dict[str, Any]], *, source: Optional[str] = None):
        self.unresolved = list(unresolved)
        names = ", ".join(sorted({repr(u["name"]) for u in self.unresolved}))
        super().__init__(f"unresolved reference(s): {names}", source=source)

    def details(self) -> List[Dict[str, Any]]:
        return [
            {
                "loc": u["referrer"],
                "value": u["name"],
                "error": f"not defined in {u['section']}",
            }
            for u in self.unresolved
        ]


def _format_loc(loc: Any) -> str:
    if not loc:
        return "<root>"
    return ".".join(str(part) for part in loc)
