# app/core/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import PostgresDsn, computed_field

class Settings(BaseSettings):
    """
    Gestiona la configuración de la aplicación cargando variables de entorno.
    Utiliza Pydantic para la validación de tipos.
    """
    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_case=True, extra="ignore"
    )

    # Variables de la base de datos (Postgres administrado por Supabase)
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_SERVER: str
    POSTGRES_DB: str
    POSTGRES_PORT: int = 5432
    # Si se define, reemplaza a la URI construida (p. ej. sqlite para pruebas)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10

    # --- JWT Settings ---
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # --- Google OAuth Settings ---
    GOOGLE_CLIENT_ID: str = "placeholder_client_id"
    GOOGLE_CLIENT_SECRET: str = "placeholder_client_secret"

    # --- OpenAI / generación de artículos ---
    OPENAI_API_KEY: str = ""
    FACT_SEARCH_MODEL: str = "gpt-4.1-mini"
    ARTICLE_MODEL: str = "gpt-4.1-nano"
    FACT_SEARCH_TIMEOUT_SECONDS: float = 30.0
    ARTICLE_TIMEOUT_SECONDS: float = 45.0
    FACT_SEARCH_MAX_TOKENS: int = 900
    ARTICLE_MAX_TOKENS: int = 1200
    EXPANSION_MAX_TOKENS: int = 1400
    WORD_COUNT_MIN: int = 500
    WORD_COUNT_MAX: int = 700
    MAX_EXPANSION_ATTEMPTS: int = 3
    MIN_FACTUAL_NOTES_LENGTH: int = 50
    MAX_EXCERPT_LENGTH: int = 500

    # --- SteinHQ (hoja de publicaciones sociales) ---
    STEINHQ_API_URL: str = "https://api.steinhq.com"
    STEINHQ_STORAGE_ID: str = ""
    STEINHQ_SHEET_NAME: str = "Sheet1"
    STEINHQ_TIMEOUT_SECONDS: float = 10.0

    # --- Banco de preguntas externo ---
    TESTBANK_TIMEOUT_SECONDS: float = 30.0

    # --- Preguntas y progreso ---
    QUESTION_CACHE_TTL_SECONDS: int = 300
    QUESTION_CACHE_MAX_ENTRIES: int = 10000
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100
    POINTS_PER_CORRECT_ANSWER: int = 100
    PROGRESS_BATCH_DELAY_SECONDS: float = 2.0
    PROGRESS_FLUSH_INTERVAL_SECONDS: float = 1.0

    # --- Sitio ---
    SITE_BASE_URL: str = "https://10tracker.com"

    # --- Logging ---
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "https://10tracker.com",
        "https://www.10tracker.com",
        "http://localhost:3000",
    ]

    @computed_field
    @property
    def DATABASE_URI(self) -> str:
        """
        Genera la URI de conexión a la base de datos en formato SQLAlchemy.
        Pydantic validará que la URI construida sea correcta.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        dsn = PostgresDsn.build(
            scheme="postgresql+psycopg2",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )
        return str(dsn)

# Instancia única de la configuración que será usada en toda la aplicación.
settings = Settings()
