# app/api/v1/endpoints/auth.py
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from authlib.integrations.starlette_client import OAuth, OAuthError

from app.db.session import get_db
from app.core import security
from app.core.deps import get_current_user
from app.crud import crud_user
from app.models.user import User as UserModel
from app.schemas.token import Token
from app.schemas.user import User, UserCreate

logger = logging.getLogger(__name__)

router = APIRouter()
oauth = OAuth()


def _token_for(user: UserModel) -> Token:
    return Token(access_token=security.create_access_token(user.id))


@router.post("/auth/token", response_model=Token, summary="Autenticación con Email y Contraseña")
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)
):
    user = crud_user.authenticate_user(db, email=form_data.username, password=form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _token_for(user)


@router.get('/login/google', summary="Iniciar login con Google")
async def login_via_google(request: Request):
    redirect_uri = request.url_for('auth_via_google')
    return await oauth.google.authorize_redirect(request, str(redirect_uri))


@router.get('/auth/google', response_model=Token, summary="Callback de autenticación de Google")
async def auth_via_google(request: Request, db: Session = Depends(get_db)):
    """
    Resuelve la cuenta de Google a la fila de users por email.
    Los estudiantes nuevos se crean automáticamente.
    """
    try:
        token = await oauth.google.authorize_access_token(request)
    except OAuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f'Could not obtain Google access token: {e.error}',
            headers={'WWW-Authenticate': 'Bearer'},
        )

    user_data = token.get('userinfo')
    if not user_data or not user_data.get('email'):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Could not read user information from Google',
        )

    user = crud_user.get_or_create_oauth_user(
        db, email=user_data['email'], full_name=user_data.get('name')
    )
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Inactive user")
    logger.info(f"Google login for user {user.id}", extra={"user_id": user.id})
    return _token_for(user)


@router.post("/auth/register", response_model=User, status_code=status.HTTP_201_CREATED,
             summary="Registrar nuevo estudiante")
def register_user(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Crea un estudiante con email y contraseña.
    """
    if crud_user.get_user_by_email(db, email=user_data.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )
    return crud_user.create_user(
        db, email=user_data.email, password=user_data.password, full_name=user_data.full_name
    )


@router.get("/auth/me", response_model=User, summary="Usuario autenticado")
def read_current_user(current_user: UserModel = Depends(get_current_user)):
    return current_user
