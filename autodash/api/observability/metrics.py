from __future__ import annotations

import re

from prometheus_client import Counter, Histogram


def normalize_path(path: str) -> str:
    """Reduce high-cardinality paths for metrics labels."""
    p = path or "/"

    # Rule lookups: one label for every table type
    p = re.sub(r"^(/api/v1/rules)/(?!validate$|reload$).+$", r"\1/:table_type", p)

    return p


HTTP_REQUESTS_TOTAL = Counter(
    "autodash_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "autodash_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

RULE_VALIDATIONS_TOTAL = Counter(
    "autodash_rule_validations_total",
    "Documents submitted to the validate endpoint, by outcome",
    ["outcome"],
)
