"""
Prometheus metrics endpoint.

Endpoint:
- GET /metrics - metrics in Prometheus text format

Available series (see core/metrics.py):
- patient_actor_chat_responses_total{mode,status}
- patient_actor_llm_fallbacks_total{mode}
- patient_actor_llm_call_duration_seconds{provider,status}
- patient_actor_sessions_created_total
- patient_actor_submission_transitions_total{to_status}
"""
import logging

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Monitoring"])


@router.get(
    "/metrics",
    summary="Prometheus Metrics",
    response_class=Response,
    responses={200: {"description": "Metrics in Prometheus format", "content": {"text/plain": {}}}},
)
async def get_metrics() -> Response:
    """Expose Prometheus metrics for scraping"""
    try:
        metrics_output = generate_latest()
        logger.debug("Exported Prometheus metrics", extra={"size_bytes": len(metrics_output)})
        return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)
    except Exception as e:
        logger.error(f"Error exporting metrics: {e}", exc_info=True)
        return Response(
            content="# Error exporting metrics\n",
            media_type="text/plain",
            status_code=500,
        )
