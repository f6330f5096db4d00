"""
Tavara.care Coordination Service - API Routes

Collects the domain routers under one APIRouter and serves the
monitoring endpoints.
"""

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import PlainTextResponse

from tavara.api.endpoints import (
    admin,
    auth,
    care_plans,
    chat,
    coverage,
    journey,
    leads,
    matching,
    meals,
    medications,
    payroll,
    profiles,
    scheduling,
    visits
)
from tavara.api.schemas import MetricsResponse
from tavara.core.settings import get_settings
from tavara.monitoring.metrics import metrics_collector

settings = get_settings()
router = APIRouter()

for module in (
    profiles,
    matching,
    admin,
    journey,
    chat,
    leads,
    auth,
    scheduling,
    coverage,
    payroll,
    medications,
    meals,
    care_plans,
    visits
):
    router.include_router(module.router)


@router.get(
    "/metrics",
    response_model=MetricsResponse,
    summary="Get service metrics",
    description="Retrieve operational metrics for monitoring",
    tags=["Monitoring"]
)
async def get_metrics():
    """
    Get service metrics.

    Returns assignment, recalculation, lead, notification and payment
    counters together with response times and uptime.
    """
    return metrics_collector.get_metrics()


@router.get(
    "/metrics/prometheus",
    response_class=PlainTextResponse,
    summary="Get Prometheus metrics",
    description="Retrieve metrics in Prometheus format",
    tags=["Monitoring"]
)
async def get_prometheus_metrics():
    if not settings.ENABLE_METRICS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Metrics are disabled"
        )
    return metrics_collector.export_prometheus()
