"""Prometheus metrics for website deploy runs.

Usage::

    from website_deploy.observability.metrics import ARTIFACT_UPLOADS_TOTAL

    ARTIFACT_UPLOADS_TOTAL.labels(status="ok").inc()
"""

from __future__ import annotations

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

DEPLOY_PHASES_TOTAL = Counter(
    "website_deploy_phases_total",
    "Completed lifecycle phases by phase and outcome.",
    labelnames=["phase", "outcome"],
    registry=REGISTRY,
)

DEPLOY_PHASE_DURATION_SECONDS = Histogram(
    "website_deploy_phase_duration_seconds",
    "Wall-clock duration of each lifecycle phase.",
    labelnames=["phase"],
    buckets=(0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 180.0, 600.0, 1800.0),
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------

HOSTING_ENABLE_REQUESTS_TOTAL = Counter(
    "website_deploy_hosting_enable_requests_total",
    "Hosting enable requests issued by the provisioning poll loop.",
    labelnames=["outcome"],
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------

ARTIFACT_UPLOADS_TOTAL = Counter(
    "website_deploy_artifact_uploads_total",
    "Artifact uploads by status (ok, error).",
    labelnames=["status"],
    registry=REGISTRY,
)


def metrics_text() -> bytes:
    """Render all registered metrics in Prometheus exposition format."""
    return generate_latest(REGISTRY)
