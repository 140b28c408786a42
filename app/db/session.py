# app/db/session.py
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from app.core.config import settings


def build_engine(uri: str):
    """
    Postgres usa pool con pre-ping (el pooler de Supabase cierra conexiones
    inactivas); sqlite solo se usa en desarrollo local y pruebas.
    """
    if make_url(uri).get_backend_name() == "sqlite":
        return create_engine(uri, connect_args={"check_same_thread": False})
    return create_engine(
        uri,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


engine = build_engine(settings.DATABASE_URI)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
