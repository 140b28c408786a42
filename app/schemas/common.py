from typing import Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """
    Forma de todas las respuestas de error de la API.
    """
    success: bool = False
    error: str
    error_code: str
    details: Optional[Any] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str
