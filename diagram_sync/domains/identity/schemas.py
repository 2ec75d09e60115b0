from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional


class UserSignup(BaseModel):
    """Схема для регистрации пользователя"""
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()


class UserLogin(BaseModel):
    """Схема для входа пользователя"""
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserUpdate(BaseModel):
    """Схема для обновления профиля"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None


class PasswordChange(BaseModel):
    """Схема для смены пароля"""
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)


class UserResponse(BaseModel):
    """Схема для ответа с данными пользователя"""
    id: int
    email: str
    name: str


class AuthResponse(BaseModel):
    """Токен сессии и данные пользователя"""
    token: str
    user: UserResponse


class ExternalIdentity(BaseModel):
    """Проверенные утверждения внешнего провайдера"""
    issuer: str
    subject: str = Field(..., min_length=1)
    email: str = ""
    name: str = ""
