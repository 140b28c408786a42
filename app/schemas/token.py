from pydantic import BaseModel


class Token(BaseModel):
    """
    Token de acceso devuelto por /auth/token y por el callback de Google.
    """
    access_token: str
    token_type: str = "bearer"
