# MIDDLEWARE DE LOGGING DE PETICIONES
# Registra cada petición con su duración y alimenta las métricas de Prometheus

import time
import json
import uuid
import logging
from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logging_config import log_api_request

logger = logging.getLogger(__name__)

api_requests_total = Counter(
    'tracker_api_requests_total',
    'Total API requests',
    ['method', 'endpoint', 'status_code']
)

api_request_duration = Histogram(
    'tracker_api_request_duration_seconds',
    'API request duration',
    ['method', 'endpoint']
)


def generate_request_id() -> str:
    return f'req_{uuid.uuid4().hex[:12]}'


def _route_path(request: Request) -> str:
    # Plantilla de la ruta (/articles/{id_or_slug}) para no disparar la cardinalidad
    route = request.scope.get('route')
    return getattr(route, 'path', None) or request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get('X-Request-ID') or generate_request_id()
        request.state.request_id = request_id
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - start
            logger.exception(
                f'Unhandled error on {request.method} {request.url.path}: {e}',
                extra={'request_id': request_id},
            )
            api_requests_total.labels(request.method, _route_path(request), '500').inc()
            api_request_duration.labels(request.method, _route_path(request)).observe(elapsed)
            response = Response(
                content=json.dumps({
                    'success': False,
                    'error': 'Internal server error',
                    'error_code': 'INTERNAL_ERROR',
                    'details': {'request_id': request_id},
                }),
                status_code=500,
                media_type='application/json'
            )
            response.headers['X-Request-ID'] = request_id
            return response

        elapsed = time.perf_counter() - start
        endpoint = _route_path(request)
        api_requests_total.labels(request.method, endpoint, str(response.status_code)).inc()
        api_request_duration.labels(request.method, endpoint).observe(elapsed)
        if not request.url.path.endswith('/metrics'):
            log_api_request(
                logger,
                request.method,
                endpoint,
                status_code=response.status_code,
                response_time_ms=int(elapsed * 1000),
                request_id=request_id,
            )
        response.headers['X-Request-ID'] = request_id
        return response
