from __future__ import annotations

from collections import Counter
from typing import Dict

from prometheus_client import Counter as PromCounter
from prometheus_client import Gauge, Histogram

# Named counters (custom)
_NAMED = Counter()

RULES_LOADED_TOTAL = PromCounter(
    "autodash_rules_loaded_total",
    "Rule documents processed by the loader",
    ["outcome"],
)

RULE_LOAD_SECONDS = Histogram(
    "autodash_rule_load_seconds",
    "Time to decode and compile one rule document",
)

RULES_REGISTERED = Gauge(
    "autodash_rules_registered",
    "Accepted rules currently served by the registry",
)

RULE_FAILURES = Gauge(
    "autodash_rule_failures",
    "Rule documents rejected by the last registry load",
)


def reset_metrics() -> None:
    """
    Test helper: clears named counters to avoid cross-test leakage.
    Prometheus counters are process-wide and never reset.
    """
    _NAMED.clear()


def inc_named(name: str, value: int = 1) -> None:
    if not name:
        return
    _NAMED[name] += int(value)


def record_rule_outcome(outcome: str, seconds: float) -> None:
    """
    Canonical loader metric increment.
    outcome: accepted | structural | reference | decode | error
    """
    RULES_LOADED_TOTAL.labels(outcome=outcome).inc()
    RULE_LOAD_SECONDS.observe(seconds)
    inc_named(f"rules_{outcome}")


def snapshot_named() -> Dict[str, int]:
    return dict(_NAMED)


def observe_registry(rules: int, failures: int) -> None:
    RULES_REGISTERED.set(rules)
    RULE_FAILURES.set(failures)
