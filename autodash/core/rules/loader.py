"""
Loading and validation of heuristic rule files.

Every *.yaml / *.yml file below the rules directory is one rule document.
A document without a table_type takes it from its file name
(UserTable.yaml -> type/UserTable).

Environment variables:
    AUTODASH_RULES_DIR       - rules directory (default: <project_root>/resources/automagic_dashboards)
    AUTODASH_LOADER_WORKERS  - documents validated concurrently (default: 1)

Per-document failures are logged and skipped; one bad file never aborts
the batch.
"""
from __future__ import annotations

import logging
import os
import pprint
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from autodash.core.observability.metrics import record_rule_outcome

from .compiler import compile_rule
from .errors import DecodeError, RuleError
from .schema import Rule
from .taxonomy import default_taxonomy
from .types import TypeHierarchy

_log = logging.getLogger("autodash.rules")

RULE_SUFFIXES = (".yaml", ".yml")

PROJECT_ROOT = Path(__file__).resolve().parents[3]
BUNDLED_RULES_DIR = PROJECT_ROOT / "resources" / "automagic_dashboards"


@dataclass(frozen=True)
class LoadFailure:
    path: str
    kind: str  # "decode" | "structural" | "reference" | "error"
    message: str
    details: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class LoadReport:
    rules: List[Rule] = field(default_factory=list)
    failures: List[LoadFailure] = field(default_factory=list)
    paths: List[str] = field(default_factory=list)  # source of each accepted rule, parallel to rules


def resolve_rules_dir(rules_dir: Optional[Path] = None) -> Path:
    if rules_dir is not None:
        return Path(rules_dir)
    env_dir = os.getenv("AUTODASH_RULES_DIR", "").strip()
    if env_dir:
        return Path(env_dir)
    return BUNDLED_RULES_DIR


def _resolve_workers(max_workers: Optional[int]) -> int:
    if max_workers is not None:
        return max(1, int(max_workers))
    raw = (os.getenv("AUTODASH_LOADER_WORKERS") or "1").strip()
    try:
        return max(1, int(raw))
    except ValueError:
        _log.warning("Ignoring invalid AUTODASH_LOADER_WORKERS=%r", raw)
        return 1


def table_type_from_path(path: Path) -> str:
    return Path(path).stem


def iter_rule_files(rules_dir: Path) -> List[Path]:
    return sorted(p for p in Path(rules_dir).rglob("*") if p.is_file() and p.suffix.lower() in RULE_SUFFIXES)


def decode_rule_file(path: Path) -> Any:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DecodeError(f"cannot read file: {exc}", source=str(path)) from exc
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DecodeError(f"invalid YAML: {exc}", source=str(path)) from exc


def with_table_type(raw: Any, table_type: str) -> Any:
    """Fill a missing (or null) table_type; anything but a mapping is left for the validator."""
    if isinstance(raw, dict) and raw.get("table_type") is None:
        return {**raw, "table_type": table_type}
    return raw


def load_rule_file(path: Path, *, hierarchy: Optional[TypeHierarchy] = None) -> Rule:
    """Decode and compile one file; raises DecodeError, StructuralError or UnresolvedReferenceError."""
    raw = with_table_type(decode_rule_file(path), table_type_from_path(path))
    try:
        return compile_rule(raw, hierarchy=hierarchy)
    except RuleError as exc:
        exc.source = str(path)
        raise


def _load_one(path: Path, hierarchy: TypeHierarchy) -> Tuple[Path, Optional[Rule], Optional[LoadFailure]]:
    t0 = time.perf_counter()
    try:
        rule = load_rule_file(path, hierarchy=hierarchy)
    except RuleError as exc:
        details = exc.details()
        _log.error(
            "Error parsing %s:\n%s",
            Path(path).name,
            pprint.pformat(details),
        )
        record_rule_outcome(exc.kind, time.perf_counter() - t0)
        failure = LoadFailure(path=str(path), kind=exc.kind, message=str(exc), details=details)
        return path, None, failure
    except Exception as exc:
        # One document must never abort the batch.
        _log.exception("Unexpected error processing %s", Path(path).name)
        record_rule_outcome("error", time.perf_counter() - t0)
        details = [{"loc": "<document>", "value": str(path), "error": f"{type(exc).__name__}: {exc}"}]
        failure = LoadFailure(path=str(path), kind="error", message=f"{path}: {exc}", details=details)
        return path, None, failure

    record_rule_outcome("accepted", time.perf_counter() - t0)
    return path, rule, None


def load_rules_report(
    rules_dir: Optional[Path] = None,
    *,
    hierarchy: Optional[TypeHierarchy] = None,
    max_workers: Optional[int] = None,
) -> LoadReport:
    resolved = resolve_rules_dir(rules_dir)
    report = LoadReport()
    if not resolved.is_dir():
        _log.warning("Rules directory %s does not exist", resolved)
        return report

    files = iter_rule_files(resolved)
    h = hierarchy or default_taxonomy()
    workers = _resolve_workers(max_workers)

    if workers > 1 and len(files) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda p: _load_one(p, h), files))
    else:
        results = [_load_one(p, h) for p in files]

    for path, rule, failure in results:
        if rule is not None:
            report.rules.append(rule)
            report.paths.append(str(path))
        if failure is not None:
            report.failures.append(failure)

    _log.info(
        "Loaded %d rule(s) from %s (%d failed)",
        len(report.rules),
        resolved,
        len(report.failures),
    )
    return report


def load_rules(
    rules_dir: Optional[Path] = None,
    *,
    hierarchy: Optional[TypeHierarchy] = None,
    max_workers: Optional[int] = None,
) -> List[Rule]:
    """Load and validate all rules in ``rules_dir``; invalid documents are logged and skipped."""
    return load_rules_report(rules_dir, hierarchy=hierarchy, max_workers=max_workers).rules
