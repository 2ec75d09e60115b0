from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from diagram_sync.core.errors import ConflictError
from diagram_sync.db.models.user import User as UserModel
from diagram_sync.domains.identity.entities import User


class UserRepository:
    """Репозиторий для работы с аккаунтами.

    Методы только сбрасывают изменения в сессию (flush); фиксацию
    транзакции выполняет вызывающий сервис.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User) -> User:
        """Создание нового пользователя"""
        db_user = UserModel(
            email=user.email,
            password_hash=user.password_hash,
            name=user.name,
            oidc_subject=user.oidc_subject,
            oidc_issuer=user.oidc_issuer,
            auth_provider=user.auth_provider,
            current_token=user.current_token,
            created_at=user.created_at,
            updated_at=user.updated_at
        )

        self.session.add(db_user)
        try:
            await self.session.flush()
        except IntegrityError:
            raise ConflictError("Email already registered")
        await self.session.refresh(db_user)
        return self._to_domain(db_user)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Получение пользователя по ID"""
        result = await self.session.execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    async def get_by_email(self, email: str) -> Optional[User]:
        """Получение пользователя по email"""
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email)
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    async def get_by_oidc_subject(self, subject: str) -> Optional[User]:
        """Получение пользователя по subject внешнего провайдера"""
        result = await self.session.execute(
            select(UserModel).where(UserModel.oidc_subject == subject)
        )
        db_user = result.scalar_one_or_none()
        return self._to_domain(db_user) if db_user else None

    async def email_exists(self, email: str) -> bool:
        """Проверка существования email"""
        result = await self.session.execute(
            select(UserModel.id).where(UserModel.email == email)
        )
        return result.scalar_one_or_none() is not None

    async def update(self, user: User) -> User:
        """Обновление пользователя"""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user.id)
            .values(
                email=user.email,
                name=user.name,
                password_hash=user.password_hash,
                oidc_subject=user.oidc_subject,
                oidc_issuer=user.oidc_issuer,
                auth_provider=user.auth_provider,
                updated_at=user.updated_at
            )
        )

        try:
            await self.session.execute(stmt)
        except IntegrityError:
            raise ConflictError("Email already registered")

        return await self.get_by_id(user.id)

    async def set_current_token(self, user_id: int, token: Optional[str]) -> None:
        """Замена единственного действующего токена сессии"""
        await self.session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(current_token=token)
        )

    def _to_domain(self, db_user: UserModel) -> User:
        """Преобразование модели БД в доменную сущность"""
        return User(
            id=db_user.id,
            email=db_user.email,
            password_hash=db_user.password_hash,
            name=db_user.name,
            oidc_subject=db_user.oidc_subject,
            oidc_issuer=db_user.oidc_issuer,
            auth_provider=db_user.auth_provider,
            current_token=db_user.current_token,
            created_at=db_user.created_at,
            updated_at=db_user.updated_at
        )
