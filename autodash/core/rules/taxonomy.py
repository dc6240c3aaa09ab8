"""
Type taxonomy used to classify field and table type tags.

Resolution order:
  1) Built-in derivations (always present)
  2) Optional YAML/JSON derivations file (AUTODASH_TYPES_FILE)

Derivations file format:
    type/Currency: type/Number
    Percentage: [Float, Score]
"""
from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

import yaml

from .types import TypeTag, to_type_tag

_log = logging.getLogger("autodash.taxonomy")


def builtin_derivations() -> List[Tuple[str, str]]:
    # (child, parent) pairs; a child may appear with several parents.
    return [
        ("Field", "*"),
        ("Table", "*"),
        # base types
        ("Number", "Field"),
        ("Integer", "Number"),
        ("BigInteger", "Integer"),
        ("Float", "Number"),
        ("Decimal", "Float"),
        ("Text", "Field"),
        ("UUID", "Text"),
        ("Boolean", "Field"),
        ("DateTime", "Field"),
        ("Date", "DateTime"),
        ("Time", "DateTime"),
        ("UNIXTimestamp", "DateTime"),
        ("UNIXTimestampSeconds", "UNIXTimestamp"),
        ("UNIXTimestampMilliseconds", "UNIXTimestamp"),
        ("Collection", "Field"),
        ("Dictionary", "Collection"),
        ("Array", "Collection"),
        # special types
        ("Special", "Field"),
        ("PK", "Special"),
        ("FK", "Special"),
        ("Category", "Special"),
        ("Enum", "Category"),
        ("Name", "Category"),
        ("Title", "Category"),
        ("Product", "Category"),
        ("Company", "Category"),
        ("Source", "Category"),
        ("User", "Category"),
        ("Coordinate", "Float"),
        ("Latitude", "Coordinate"),
        ("Longitude", "Coordinate"),
        ("Address", "Special"),
        ("City", "Address"),
        ("City", "Category"),
        ("State", "Address"),
        ("State", "Category"),
        ("Country", "Address"),
        ("Country", "Category"),
        ("ZipCode", "Address"),
        ("Email", "Text"),
        ("URL", "Text"),
        ("ImageURL", "URL"),
        ("AvatarURL", "ImageURL"),
        ("Description", "Text"),
        ("Comment", "Text"),
        ("SerializedJSON", "Text"),
        ("Score", "Number"),
        ("Quantity", "Integer"),
        ("Duration", "Number"),
        ("Share", "Float"),
        ("Income", "Number"),
        ("Price", "Number"),
        ("Discount", "Number"),
        ("Cost", "Number"),
        ("GrossMargin", "Number"),
        ("CreationTimestamp", "DateTime"),
        ("JoinTimestamp", "DateTime"),
        ("Birthdate", "Date"),
        # table types
        ("GenericTable", "Table"),
        ("UserTable", "GenericTable"),
        ("CompanyTable", "GenericTable"),
        ("TransactionTable", "GenericTable"),
        ("ProductTable", "GenericTable"),
        ("SubscriptionTable", "GenericTable"),
        ("EventTable", "GenericTable"),
        ("GoogleAnalyticsTable", "GenericTable"),
    ]


class Taxonomy:
    """Multiple-inheritance tag hierarchy; ``isa`` is reflexive and transitive."""

    def __init__(self, derivations: Iterable[Tuple[str, str]] = ()):
        self._parents: Dict[TypeTag, Set[TypeTag]] = {}
        # Reentrant: derive() holds it while isa() walks the ancestors.
        self._lock = threading.RLock()
        for child, parent in derivations:
            self.derive(child, parent)

    def derive(self, child: str, parent: str) -> None:
        c, p = to_type_tag(child), to_type_tag(parent)
        if not (isinstance(c, TypeTag) and isinstance(p, TypeTag)):
            raise ValueError(f"Cannot derive {child!r} from {parent!r}: both must be type names")
        with self._lock:
            if self.isa(p, c):
                raise ValueError(f"Cyclic derivation: {c} -> {p}")
            self._parents.setdefault(c, set()).add(p)

    def parents(self, tag: str) -> Set[TypeTag]:
        with self._lock:
            return set(self._parents.get(TypeTag(tag), ()))

    def ancestors(self, tag: str) -> Set[TypeTag]:
        seen: Set[TypeTag] = set()
        with self._lock:
            stack = list(self._parents.get(TypeTag(tag), ()))
            while stack:
                t = stack.pop()
                if t in seen:
                    continue
                seen.add(t)
                stack.extend(self._parents.get(t, ()))
        return seen

    def isa(self, tag: str, ancestor: str) -> bool:
        if not isinstance(tag, str) or not isinstance(ancestor, str):
            return False
        return tag == ancestor or TypeTag(ancestor) in self.ancestors(tag)



def _parse_derivations(raw: dict) -> List[Tuple[str, str]]:
    out: List[Tuple[str, str]] = []
    for child, parents in raw.items():
        if isinstance(parents, str):
            parents = [parents]
        if not isinstance(child, str) or not isinstance(parents, list):
            _log.warning("Skipping invalid type derivation %r: %r", child, parents)
            continue
        for parent in parents:
            if isinstance(parent, str):
                out.append((child, parent))
            else:
                _log.warning("Skipping invalid parent %r for type %r", parent, child)
    return out


def load_taxonomy(types_file: Optional[Path] = None) -> Taxonomy:
    """
    Built-in taxonomy extended with the optional derivations file.

    A missing, unreadable or malformed file leaves the built-in taxonomy
    untouched; individual cyclic derivations are skipped.
    """
    taxonomy = Taxonomy(builtin_derivations())

    resolved = _resolve_path(types_file)
    if resolved is None or not resolved.exists():
        return taxonomy

    try:
        raw_text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        _log.warning("Cannot read types file %s: %s", resolved, exc)
        return taxonomy

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            _log.warning("Failed to parse types file %s as JSON or YAML: %s", resolved, exc)
            return taxonomy

    if not isinstance(data, dict):
        _log.warning("Types file %s must be a mapping, got %s", resolved, type(data).__name__)
        return taxonomy

    added = 0
    for child, parent in _parse_derivations(data):
        try:
            taxonomy.derive(child, parent)
            added += 1
        except ValueError as exc:
            _log.warning("Skipping type derivation from %s: %s", resolved, exc)
    if added:
        _log.info("Loaded %d type derivations from %s", added, resolved)
    return taxonomy


def _resolve_path(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return Path(path)
    env_path = os.getenv("AUTODASH_TYPES_FILE", "").strip()
    if env_path:
        return Path(env_path)
    return None


_DEFAULT: Optional[Taxonomy] = None
_DEFAULT_LOCK = threading.Lock()


def default_taxonomy() -> Taxonomy:
    global _DEFAULT
    with _DEFAULT_LOCK:
        if _DEFAULT is None:
            _DEFAULT = load_taxonomy()
        return _DEFAULT


def reset_default_taxonomy() -> None:
    """Test helper: forget the cached default so env changes take effect."""
    global _DEFAULT
    with _DEFAULT_LOCK:
        _DEFAULT = None
