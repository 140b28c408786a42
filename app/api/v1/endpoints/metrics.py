from fastapi import APIRouter, Request, Response
from prometheus_client import Gauge, generate_latest, CONTENT_TYPE_LATEST
import time

router = APIRouter()

# Los contadores de peticiones, cache y LLM se registran en sus módulos
system_uptime_seconds = Gauge(
    'system_uptime_seconds',
    'System uptime in seconds'
)
progress_pending_keys = Gauge(
    'tracker_progress_pending_keys',
    'Progress updates waiting in the write buffer'
)

start_time = time.time()


@router.get("/metrics", include_in_schema=False)
def get_metrics(request: Request):
    """
    Endpoint de métricas para Prometheus.
    """
    system_uptime_seconds.set(time.time() - start_time)
    buffer = getattr(request.app.state, "progress_buffer", None)
    if buffer is not None:
        progress_pending_keys.set(buffer.pending_count())

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
