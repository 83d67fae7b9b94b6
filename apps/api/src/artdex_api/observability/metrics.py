from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

operation_total = Counter(
    "artdex_operation_total",
    "Count of artist operations.",
    labelnames=("operation", "outcome", "error_code"),
)
operation_duration_seconds = Histogram(
    "artdex_operation_duration_seconds",
    "Duration of artist operations in seconds.",
    labelnames=("operation", "outcome"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

finder_lookup_total = Counter(
    "artdex_finder_lookup_total",
    "Count of source URL lookups by resolving site and outcome.",
    labelnames=("site", "outcome"),
)

illustration_resolver_timeout_total = Counter(
    "artdex_illustration_resolver_timeout_total",
    "Count of illustration owner lookups abandoned after a provider timeout.",
    labelnames=("site",),
)

artist_version_write_total = Counter(
    "artdex_artist_version_write_total",
    "Count of artist version write decisions.",
    labelnames=("decision",),
)


def render_metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
