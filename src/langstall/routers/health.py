from fastapi import APIRouter

from ..metrics import registry

router = APIRouter()


@router.get("/healthz")
def health_check() -> dict[str, str]:
    """Liveness/readiness probe for monitors and container orchestrators."""
    return {"status": "ok"}


@router.get("/metrics")
def metrics_snapshot() -> dict[str, object]:
    """Per-path latency (p95) and error counts plus review outcome counters."""
    return registry.snapshot()
