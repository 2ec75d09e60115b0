import logging
from typing import Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from diagram_sync.core.db import transaction
from diagram_sync.core.errors import (
    AuthenticationRequiredError, ConflictError, ValidationError
)
from diagram_sync.db.repositories.user_repository import UserRepository
from diagram_sync.domains.identity.entities import User
from diagram_sync.domains.identity.schemas import UserSignup, UserLogin, UserUpdate, PasswordChange
from diagram_sync.domains.identity.sessions import SessionAuthority

logger = logging.getLogger(__name__)


class IdentityService:
    """Сервис для работы с идентификацией и аутентификацией пользователей"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repository = UserRepository(session)
        self.sessions = SessionAuthority(session)

    async def register_user(self, signup: UserSignup) -> Tuple[User, str]:
        """Регистрация нового пользователя и сразу вход"""
        async with transaction(self.session):
            if await self.user_repository.email_exists(signup.email):
                raise ConflictError("Email already registered")

            user = User.create_user(
                email=signup.email,
                password=signup.password,
                name=signup.name
            )
            user = await self.user_repository.create(user)

        logger.info(f"Registered user {user.id}")
        token = await self.sessions.login(user)
        return user, token

    async def authenticate_user(self, login_data: UserLogin) -> Optional[User]:
        """Аутентификация пользователя"""
        user = await self.user_repository.get_by_email(login_data.email)

        if not user or not user.authenticate(login_data.password):
            return None

        return user

    async def login_user(self, login_data: UserLogin) -> Tuple[User, str]:
        """Вход пользователя; прежние сессии аккаунта становятся недействительными"""
        user = await self.authenticate_user(login_data)

        if not user:
            raise AuthenticationRequiredError("Invalid email or password")

        token = await self.sessions.login(user)
        return user, token

    async def logout_user(self, user: User) -> None:
        await self.sessions.logout(user)

    async def update_user_profile(self, user: User, update_data: UserUpdate) -> User:
        """Обновление профиля пользователя"""
        async with transaction(self.session):
            # Проверка уникальности email при изменении
            if update_data.email and update_data.email != user.email:
                if await self.user_repository.email_exists(update_data.email):
                    raise ConflictError("Email already registered")

            user.update_profile(name=update_data.name, email=update_data.email)
            updated = await self.user_repository.update(user)

        return updated

    async def change_user_password(self, user: User, password_data: PasswordChange) -> None:
        """Смена пароля пользователя"""
        if not user.authenticate(password_data.current_password):
            raise ValidationError("Current password is incorrect")

        async with transaction(self.session):
            user.set_password(password_data.new_password)
            await self.user_repository.update(user)

        logger.info(f"Password changed for user {user.id}")
