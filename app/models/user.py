# app/models/user.py
from sqlalchemy import Boolean, Column, Integer, String, TIMESTAMP, func

from app.db.base import Base


class User(Base):
    """
    Usuario de la plataforma (estudiante o administrador).
    El id de esta tabla es el identificador canónico del usuario: todos los
    proveedores de identidad (contraseña, Google) se resuelven a esta fila.
    """
    __tablename__ = 'users'
    id = Column(Integer, primary_key=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    auth_provider = Column(String(20), nullable=False, server_default='password')
    is_admin = Column(Boolean, server_default='false', nullable=False, default=False)
    is_active = Column(Boolean, server_default='true', nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', admin={self.is_admin})>"
