from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.security import decode_access_token
from app.crud.crud_user import get_user
from app.db.session import get_db
from app.models.user import User
from app.services.progress_buffer import ProgressWriteBuffer

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme)
) -> User:
    """
    Dependencia para obtener el usuario actual desde el token JWT.
    El sub del token es el id interno del usuario.
    """
    user_id = decode_access_token(token)
    user = get_user(db, user_id=user_id) if user_id is not None else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    return user


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Solo administradores (CMS, pruebas simuladas, banco de preguntas).
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


def get_progress_buffer(request: Request) -> ProgressWriteBuffer:
    """
    Buffer de escrituras de progreso creado en el lifespan de la aplicación.
    """
    return request.app.state.progress_buffer
