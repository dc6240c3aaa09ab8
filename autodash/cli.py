"""Validate a directory of heuristic rule files.

    python -m autodash.cli [RULES_DIR] [--strict] [--workers N] [--types FILE] [-v]

Exit codes: 0 ok (or failures without --strict), 1 failures under --strict,
2 rules directory missing.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from autodash.core.rules.loader import load_rules_report, resolve_rules_dir
from autodash.core.rules.taxonomy import load_taxonomy


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="autodash-validate", description="Validate heuristic rule files.")
    ap.add_argument("rules_dir", nargs="?", default=None, help="Rules directory (default: AUTODASH_RULES_DIR or bundled rules)")
    ap.add_argument("--strict", action="store_true", help="Exit 1 if any document fails")
    ap.add_argument("--workers", type=int, default=None, help="Documents validated concurrently")
    ap.add_argument("--types", type=Path, default=None, help="Extra type derivations (YAML/JSON)")
    ap.add_argument("-v", "--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    rules_dir = resolve_rules_dir(Path(args.rules_dir) if args.rules_dir else None)
    if not rules_dir.is_dir():
        print(f"ERROR: rules directory not found: {rules_dir}")
        return 2

    taxonomy = load_taxonomy(args.types) if args.types else None
    report = load_rules_report(rules_dir, hierarchy=taxonomy, max_workers=args.workers)

    for path, rule in zip(report.paths, report.rules):
        print(f"OK    {path}  {rule.table_type}  ({len(rule.cards)} cards)")
    for failure in report.failures:
        print(f"FAIL  {failure.path}  [{failure.kind}]")
        for d in failure.details:
            print(f"        - {d.get('loc')}: {d.get('error')} (got {d.get('value')!r})")

    print(f"{len(report.rules)} accepted, {len(report.failures)} rejected")
    if args.strict and report.failures:
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
