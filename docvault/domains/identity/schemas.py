from pydantic import BaseModel, Field
from typing import Optional


class UserCreate(BaseModel):
    """Схема для регистрации личности"""
    alias: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6, max_length=256)


class UserLogin(BaseModel):
    """Схема для входа"""
    alias: str
    password: str


class IdentityResponse(BaseModel):
    """Публичная личность"""
    alias: str
    pub: str
    epub: str
    created_at: Optional[str] = None


class Token(BaseModel):
    """Схема для JWT токена"""
    access_token: str
    token_type: str = "bearer"
