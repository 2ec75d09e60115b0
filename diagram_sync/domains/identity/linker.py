import logging
from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncSession

from diagram_sync.core.db import transaction
from diagram_sync.core.errors import ValidationError
from diagram_sync.db.repositories.user_repository import UserRepository
from diagram_sync.domains.identity.entities import User
from diagram_sync.domains.identity.schemas import ExternalIdentity
from diagram_sync.domains.identity.sessions import SessionAuthority

logger = logging.getLogger(__name__)


class AccountLinker:
    """Сопоставление внешней учетной записи локальному аккаунту"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repository = UserRepository(session)
        self.sessions = SessionAuthority(session)

    async def resolve(self, identity: ExternalIdentity) -> User:
        """subject -> привязка по email -> новый аккаунт"""
        async with transaction(self.session):
            user = await self.user_repository.get_by_oidc_subject(identity.subject)
            if user is not None:
                return user

            user = await self.user_repository.get_by_email(identity.email) if identity.email else None
            if user is not None:
                user.link_external_identity(identity.issuer, identity.subject)
                user = await self.user_repository.update(user)
                logger.info(f"Linked external identity to user {user.id}")
                return user

            if not identity.email:
                raise ValidationError("External identity has no email address")

            user = User.create_external_user(
                email=identity.email,
                name=identity.name,
                issuer=identity.issuer,
                subject=identity.subject
            )
            user = await self.user_repository.create(user)
            logger.info(f"Created user {user.id} from external identity")
            return user

    async def login(self, identity: ExternalIdentity) -> Tuple[User, str]:
        user = await self.resolve(identity)
        token = await self.sessions.login(user)
        return user, token
