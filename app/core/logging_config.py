import logging
import logging.config
import json
from datetime import datetime
from typing import Dict, Any, List
from pathlib import Path

# Campos que los servicios pasan en extra= y que van al JSON
CONTEXT_FIELDS = (
    'service', 'endpoint', 'method', 'status_code', 'response_time_ms',
    'user_id', 'request_id', 'model', 'operation', 'error_code', 'result',
)


class StructuredFormatter(logging.Formatter):
    """
    Una línea JSON por registro; los archivos de logs/ se envían al
    sistema de monitoreo tal cual.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_entry.update(
            {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}
        )
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def _rotating(log_dir: Path, filename: str, level: str = "INFO", backups: int = 10) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "formatter": "structured",
        "filename": str(log_dir / filename),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": backups,
        "level": level,
    }


def _logger(handlers: List[str], level: str) -> Dict[str, Any]:
    return {"level": level, "handlers": handlers, "propagate": False}


def setup_logging(log_dir: str = "logs", level: str = "INFO") -> None:
    """
    Consola legible y archivos JSON rotados por área:
    app.log (todo), errors.log, api.log (peticiones), llm.log (generación
    de artículos) y progress.log (buffer de escritura de progreso).
    """
    directory = Path(log_dir)
    directory.mkdir(exist_ok=True)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {"()": StructuredFormatter},
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "simple",
                "level": level,
                "stream": "ext://sys.stdout",
            },
            "file_all": _rotating(directory, "app.log", level),
            "file_errors": _rotating(directory, "errors.log", "ERROR"),
            "file_api": _rotating(directory, "api.log", level),
            "file_llm": _rotating(directory, "llm.log", level, backups=5),
            "file_progress": _rotating(directory, "progress.log", level, backups=5),
        },
        "loggers": {
            "app": _logger(["console", "file_all", "file_errors"], level),
            "app.services.llm_client": _logger(["console", "file_llm", "file_errors"], level),
            "app.services.article_generation": _logger(["console", "file_llm", "file_errors"], level),
            "app.services.progress_buffer": _logger(["console", "file_progress", "file_errors"], level),
            "middleware": _logger(["file_api", "file_errors"], level),
            "uvicorn": _logger(["console", "file_api"], level),
            "uvicorn.access": _logger(["file_api"], level),
        },
        "root": {"level": "WARNING", "handlers": ["console", "file_all"]},
    })

    logging.getLogger("app").info(f"Logging initialized, files in {directory.absolute()}")


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """
    Agrega el nombre del servicio a cada registro sin pisar el extra
    que pase quien llama.
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}
        return msg, kwargs


def get_service_logger(name: str, service: str) -> ServiceLoggerAdapter:
    return ServiceLoggerAdapter(logging.getLogger(name), {"service": service})


def log_api_request(logger: logging.Logger, method: str, endpoint: str,
                    status_code: int = None, response_time_ms: int = None,
                    user_id: str = None, **kwargs):
    """
    Registra una petición HTTP: error para 5xx, warning para 4xx.

    Args:
        logger: Logger a usar
        method: Método HTTP
        endpoint: Plantilla de la ruta (p. ej. /api/v1/articles/{id_or_slug})
        status_code: Código de respuesta HTTP
        response_time_ms: Tiempo de respuesta en milisegundos
        user_id: id del usuario, si se conoce
    """
    extra = {"method": method, "endpoint": endpoint, "service": "api", **kwargs}
    if status_code:
        extra["status_code"] = status_code
    if response_time_ms is not None:
        extra["response_time_ms"] = response_time_ms
    if user_id:
        extra["user_id"] = user_id

    if status_code and status_code >= 500:
        logger.error(f"API request failed: {method} {endpoint}", extra=extra)
    elif status_code and status_code >= 400:
        logger.warning(f"API request rejected: {method} {endpoint}", extra=extra)
    else:
        logger.info(f"API request: {method} {endpoint}", extra=extra)


def log_llm_call(logger: logging.Logger, operation: str, model: str,
                 success: bool = True, response_time_ms: int = None, **kwargs):
    """
    Registra una llamada al proveedor de LLM (fact_search, draft, expand).
    """
    extra = {"operation": operation, "model": model, "service": "llm", **kwargs}
    if response_time_ms is not None:
        extra["response_time_ms"] = response_time_ms

    if success:
        logger.info(f"LLM call successful: {operation}", extra=extra)
    else:
        logger.error(f"LLM call failed: {operation}", extra=extra)
