from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from diagram_sync.core.auth import clear_auth_cookie, get_current_user, set_auth_cookie
from diagram_sync.core.db import get_db
from diagram_sync.domains.identity.entities import User
from diagram_sync.domains.identity.schemas import (
    AuthResponse, PasswordChange, UserLogin, UserResponse, UserSignup, UserUpdate
)
from diagram_sync.domains.identity.services import IdentityService

router = APIRouter(prefix="/auth", tags=["authentication"])


def to_user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, name=user.name)


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    signup_data: UserSignup,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Регистрация нового пользователя"""
    identity_service = IdentityService(db)
    user, token = await identity_service.register_user(signup_data)

    set_auth_cookie(response, token)
    return AuthResponse(token=token, user=to_user_response(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    login_data: UserLogin,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """Вход пользователя"""
    identity_service = IdentityService(db)
    user, token = await identity_service.login_user(login_data)

    set_auth_cookie(response, token)
    return AuthResponse(token=token, user=to_user_response(user))


@router.post("/logout")
async def logout(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Выход пользователя"""
    await IdentityService(db).logout_user(current_user)

    clear_auth_cookie(response)
    return {"message": "Successfully logged out"}


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return to_user_response(current_user)


@router.put("/me", response_model=UserResponse)
async def update_me(
    update_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Обновление имени и email"""
    user = await IdentityService(db).update_user_profile(current_user, update_data)
    return to_user_response(user)


@router.put("/password")
async def change_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Смена пароля"""
    await IdentityService(db).change_user_password(current_user, password_data)
    return {"message": "Password changed successfully"}
