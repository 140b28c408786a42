from typing import Any, Optional
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TrackerError(Exception):
    """
    Excepción base de la aplicación.
    Cada subclase fija el código HTTP y el código de error que ve el cliente.
    """
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(TrackerError):
    """Entrada inválida o incompleta"""
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"


class NotFoundError(TrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"


class ConflictError(TrackerError):
    """Conflicto con un campo único (título duplicado, slug, etc.)"""
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"


class UpstreamError(TrackerError):
    """Fallo de un proveedor externo (LLM, banco de preguntas)"""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "UPSTREAM_ERROR"


class UpstreamTimeoutError(UpstreamError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error_code = "UPSTREAM_TIMEOUT"


class UpstreamRateLimitError(UpstreamError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "UPSTREAM_RATE_LIMIT"


class UpstreamAuthError(UpstreamError):
    error_code = "UPSTREAM_AUTH"


class InsufficientDataError(TrackerError):
    """La búsqueda de hechos devolvió muy poca información"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "INSUFFICIENT_DATA"


class WordCountError(TrackerError):
    """El artículo quedó por debajo del mínimo de palabras tras expandir"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "WORD_COUNT_OUT_OF_RANGE"


class PersistenceError(TrackerError):
    """Violación de restricciones o fallo al escribir en la base de datos"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "PERSISTENCE_ERROR"


def register_exception_handlers(app: FastAPI) -> None:
    """
    Registra los manejadores que convierten TrackerError y los errores de
    validación de FastAPI en respuestas JSON.
    """

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(request: Request, exc: TrackerError):
        if exc.status_code >= 500:
            logger.error(
                f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
                extra={"error_code": exc.error_code, "endpoint": request.url.path},
            )
        else:
            logger.info(
                f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
                extra={"error_code": exc.error_code, "endpoint": request.url.path},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": exc.message,
                "error_code": exc.error_code,
                "details": exc.details,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": "Invalid request",
                "error_code": ValidationError.error_code,
                "details": jsonable_encoder(exc.errors()),
            },
        )
