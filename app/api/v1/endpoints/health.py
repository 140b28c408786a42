# app/api/v1/endpoints/health.py
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone

from app.core.config import settings
from app.db.session import get_db

router = APIRouter()


def check_llm_service():
    """
    Verifica que el proveedor de LLM esté configurado (no hace llamadas).
    """
    if not settings.OPENAI_API_KEY:
        return {"status": "misconfigured", "message": "OPENAI_API_KEY not found"}
    return {"status": "ready", "fact_model": settings.FACT_SEARCH_MODEL, "article_model": settings.ARTICLE_MODEL}


@router.get("/health", summary="Verifica el estado completo del servicio")
def check_health(request: Request, db: Session = Depends(get_db)):
    """
    Endpoint de Health Check consolidado.
    Verifica la base de datos, el proveedor de LLM y el buffer de progreso.
    """
    health_status = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "database": {"status": "unknown"},
            "llm": {"status": "unknown"},
        }
    }

    try:
        db.execute(text("SELECT 1"))
        health_status["services"]["database"] = {"status": "healthy"}
    except SQLAlchemyError as e:
        health_status["services"]["database"] = {"status": "unhealthy", "error": str(e)}

    health_status["services"]["llm"] = check_llm_service()
    if health_status["services"]["llm"]["status"] != "ready":
        health_status["status"] = "degraded"

    buffer = getattr(request.app.state, "progress_buffer", None)
    if buffer is not None:
        health_status["services"]["progress_buffer"] = {
            "status": "ready",
            "pending_keys": buffer.pending_count(),
        }

    if health_status["services"]["database"]["status"] == "unhealthy":
        health_status["status"] = "unhealthy"
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
