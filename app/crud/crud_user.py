from typing import Optional
from sqlalchemy.orm import Session

from app.core.security import get_password_hash, verify_password
from app.models.user import User


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user(db: Session, user_id: int) -> Optional[User]:
    """
    Obtiene un usuario por su id interno.
    """
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == _normalize_email(email)).first()


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """
    Devuelve el usuario si la contraseña coincide y la cuenta está activa.
    Las cuentas de Google no tienen contraseña y nunca autentican aquí.
    """
    user = get_user_by_email(db, email)
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def _add_user(db: Session, email: str, full_name: Optional[str], hashed_password: Optional[str],
              auth_provider: str, is_admin: bool) -> User:
    db_user = User(
        email=_normalize_email(email),
        full_name=full_name or email.split('@')[0],
        hashed_password=hashed_password,
        auth_provider=auth_provider,
        is_admin=is_admin,
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def create_user(db: Session, email: str, password: str, full_name: str = None) -> User:
    """
    Registra un estudiante con contraseña.
    """
    return _add_user(db, email, full_name, get_password_hash(password), "password", is_admin=False)


def create_admin_user(db: Session, email: str, password: str, full_name: str = None) -> User:
    return _add_user(db, email, full_name, get_password_hash(password), "password", is_admin=True)


def promote_to_admin(db: Session, user: User) -> User:
    user.is_admin = True
    db.commit()
    db.refresh(user)
    return user


def get_or_create_oauth_user(db: Session, email: str, full_name: str = None, provider: str = "google") -> User:
    """
    Resuelve un login externo a la fila de users por email.
    Si no existe se crea como estudiante sin contraseña local.
    """
    user = get_user_by_email(db, email)
    if user:
        return user
    return _add_user(db, email, full_name, None, provider, is_admin=False)
