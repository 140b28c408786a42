# app/main.py
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from app.api.v1.endpoints import (
    article_generation, articles, auth, health, metrics, mock_tests,
    progress, questions, testbank
)
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging_config import setup_logging
from app.db.session import SessionLocal
from app.services.progress_buffer import ProgressWriteBuffer, database_sink
from middleware.request_logging import RequestLoggingMiddleware

# Configurar logging al inicio de la aplicacion
setup_logging(settings.LOG_DIR, settings.LOG_LEVEL)
logger = logging.getLogger('app')


async def _flush_progress_periodically(buffer: ProgressWriteBuffer, interval: float):
    """
    Escribe el buffer de progreso cuando pasa el tiempo de inactividad.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(buffer.flush_if_idle)
        except Exception as e:
            logger.error(f'Progress flush loop error: {e}')


@asynccontextmanager
async def lifespan(app: FastAPI):
    buffer = ProgressWriteBuffer(
        database_sink(SessionLocal),
        idle_delay=settings.PROGRESS_BATCH_DELAY_SECONDS,
    )
    app.state.progress_buffer = buffer
    flush_task = asyncio.create_task(
        _flush_progress_periodically(buffer, settings.PROGRESS_FLUSH_INTERVAL_SECONDS)
    )
    logger.info('Progress write buffer started')
    try:
        yield
    finally:
        flush_task.cancel()
        try:
            await flush_task
        except asyncio.CancelledError:
            pass
        await asyncio.to_thread(buffer.flush_on_exit)
        logger.info('Progress write buffer stopped')


app = FastAPI(
    title='Exam Tracker API',
    description='''
    ## Backend API para la plataforma de práctica de exámenes

    **Servicios Disponibles:**
    - **Health Check**: Monitoreo de estado de servicios
    - **Authentication**: JWT + OAuth Google
    - **Questions**: Preguntas por capítulo, tema y materia con cache
    - **Progress**: Progreso de práctica por tema con escrituras en lote
    - **Articles**: CMS de artículos y sitemap
    - **Article Generation**: Generación de artículos con LLM
    - **Mock Tests**: Pruebas simuladas manuales y automáticas
    - **Test Bank**: Importación desde el banco de preguntas externo
    - **Metrics**: Métricas para Prometheus
    ''',
    version='1.0.0',
    openapi_url='/openapi.json',
    docs_url='/docs',
    redoc_url='/redoc',
    lifespan=lifespan,
)

logger.info('Exam Tracker API starting up')

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

# Configurar middleware de sesion (requerido para OAuth)
app.add_middleware(SessionMiddleware, secret_key=settings.SECRET_KEY)

app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Registrar OAuth Google para autenticacion
auth.oauth.register(
    name='google',
    client_id=settings.GOOGLE_CLIENT_ID,
    client_secret=settings.GOOGLE_CLIENT_SECRET,
    server_metadata_url='https://accounts.google.com/.well-known/openid-configuration',
    client_kwargs={'scope': 'openid email profile'}
)

# Incluir rutas
app.include_router(health.router, prefix='/api/v1', tags=['Health Check'])
app.include_router(auth.router, prefix='/api/v1', tags=['Authentication'])
app.include_router(questions.router, prefix='/api/v1/questions', tags=['Questions'])
app.include_router(progress.router, prefix='/api/v1/progress', tags=['Progress'])
app.include_router(articles.router, prefix='/api/v1/articles', tags=['Articles'])
app.include_router(article_generation.router, prefix='/api/v1/article-generation', tags=['Article Generation'])
app.include_router(mock_tests.router, prefix='/api/v1/mock-tests', tags=['Mock Tests'])
app.include_router(testbank.router, prefix='/api/v1/testbank', tags=['Test Bank'])
app.include_router(metrics.router, tags=['Metrics'])


@app.get('/')
async def root():
    return {
        'message': 'Exam Tracker API',
        'status': 'operativo',
        'version': '1.0.0',
        'docs': '/docs',
        'available_services': [
            'health', 'auth', 'questions', 'progress', 'articles',
            'article-generation', 'mock-tests', 'testbank', 'metrics'
        ],
        'authentication_endpoints': {
            'login_email': '/api/v1/auth/token',
            'login_google': '/api/v1/login/google',
            'google_callback': '/api/v1/auth/google'
        }
    }


if __name__ == '__main__':
    import uvicorn
    uvicorn.run(app, host='0.0.0.0', port=8000)
