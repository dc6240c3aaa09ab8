from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from .loader import LoadFailure, load_rules_report, resolve_rules_dir
from .schema import Rule
from .types import TypeHierarchy, to_type_tag

_log = logging.getLogger("autodash.rules")


class RuleRegistry:
    """Accepted rules indexed by table type.

    Two documents for the same table type: the later file (path order) wins.
    reload() builds a fresh index and swaps it in.
    """

    def __init__(
        self,
        rules_dir: Optional[Path] = None,
        *,
        hierarchy: Optional[TypeHierarchy] = None,
        max_workers: Optional[int] = None,
    ):
        self.rules_dir = resolve_rules_dir(rules_dir)
        self._hierarchy = hierarchy
        self._max_workers = max_workers
        self._lock = threading.Lock()
        self._rules: Dict[str, Rule] = {}
        self._failures: List[LoadFailure] = []
        self.reload()

    def reload(self) -> None:
        report = load_rules_report(self.rules_dir, hierarchy=self._hierarchy, max_workers=self._max_workers)

        rules: Dict[str, Rule] = {}
        for path, rule in sorted(zip(report.paths, report.rules), key=lambda pr: pr[0]):
            key = str(rule.table_type)
            if key in rules:
                _log.warning("Rule for %s in %s overrides an earlier definition", key, path)
            rules[key] = rule

        with self._lock:
            self._rules = rules
            self._failures = list(report.failures)

    @property
    def hierarchy(self) -> Optional[TypeHierarchy]:
        return self._hierarchy

    def list_table_types(self) -> List[str]:
        with self._lock:
            return sorted(self._rules.keys())

    def rules(self) -> List[Rule]:
        with self._lock:
            return [self._rules[k] for k in sorted(self._rules.keys())]

    def get(self, table_type: str) -> Optional[Rule]:
        """Accepts ``type/UserTable`` or ``UserTable``."""
        key = to_type_tag(table_type)
        with self._lock:
            return self._rules.get(str(key))

    @property
    def failures(self) -> List[LoadFailure]:
        with self._lock:
            return list(self._failures)
