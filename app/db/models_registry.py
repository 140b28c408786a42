# app/db/models_registry.py
# Este archivo importa todos los modelos para que Alembic pueda detectarlos
# Se importa en las pruebas antes de create_all

from app.db.base import Base
from app.models.user import User
from app.models.question import Question
from app.models.progress import ProgressRecord
from app.models.article import Article, ArticleCategory, SubredditTracking
from app.models.mock_test import MockTest, MockTestQuestion, MockTestAttempt

# Exportar Base para uso en Alembic
__all__ = [
    "Base", "User", "Question", "ProgressRecord", "Article", "ArticleCategory",
    "SubredditTracking", "MockTest", "MockTestQuestion", "MockTestAttempt",
]
