"""Session Authority: одна живая сессия на аккаунт.

Действующим считается только последний выданный токен: он хранится в
записи аккаунта, и каждый запрос сравнивает предъявленный токен с ним.
Новый вход где угодно сразу вытесняет все прежние сессии.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from diagram_sync.core.db import transaction
from diagram_sync.core.errors import AuthenticationRequiredError, SessionExpiredError
from diagram_sync.core.security import (
    TokenExpired, TokenInvalid, create_access_token, decode_access_token
)
from diagram_sync.db.repositories.user_repository import UserRepository
from diagram_sync.domains.identity.entities import User

logger = logging.getLogger(__name__)


class SessionAuthority:
    """Выдача и проверка токенов сессии"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repository = UserRepository(session)

    async def login(self, user: User) -> str:
        """Выпуск нового токена; он становится единственным действующим"""
        token = create_access_token({"sub": str(user.id), "email": user.email})

        async with transaction(self.session):
            await self.user_repository.set_current_token(user.id, token)

        user.current_token = token
        logger.info(f"Issued session for user {user.id}")
        return token

    async def logout(self, user: User) -> None:
        async with transaction(self.session):
            await self.user_repository.set_current_token(user.id, None)

        user.current_token = None
        logger.info(f"Cleared session for user {user.id}")

    async def validate(self, token: str) -> User:
        """Проверка подписи, срока действия и того, что токен последний выданный"""
        if not token:
            raise AuthenticationRequiredError()

        try:
            payload = decode_access_token(token)
        except TokenExpired:
            raise SessionExpiredError()
        except TokenInvalid:
            raise AuthenticationRequiredError("Invalid or expired token")

        try:
            user_id = int(payload.get("sub"))
        except (TypeError, ValueError):
            raise AuthenticationRequiredError("Invalid or expired token")

        user = await self.user_repository.get_by_id(user_id)
        if user is None:
            raise AuthenticationRequiredError("User not found")

        if not user.has_live_session(token):
            logger.debug(f"Rejected superseded session for user {user.id}")
            raise SessionExpiredError()

        return user
