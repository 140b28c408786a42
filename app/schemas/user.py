from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None


class UserCreate(UserBase):
    """
    Schema para el registro de estudiantes con contraseña.
    """
    password: str = Field(..., min_length=8, max_length=128)


class User(UserBase):
    id: int
    auth_provider: str
    is_admin: bool
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
