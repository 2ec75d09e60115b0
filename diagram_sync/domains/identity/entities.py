import secrets
from datetime import datetime
from typing import Optional

from diagram_sync.core.security import (
    generate_random_password, get_password_hash, verify_password
)

LOCAL_PROVIDER = "local"
OIDC_PROVIDER = "oidc"


class User:
    """Сущность аккаунта домена Identity"""

    def __init__(
        self,
        id: Optional[int],
        email: str,
        password_hash: str,
        name: str = "",
        oidc_subject: Optional[str] = None,
        oidc_issuer: Optional[str] = None,
        auth_provider: str = LOCAL_PROVIDER,
        current_token: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self.id = id
        self.email = email
        self.password_hash = password_hash
        self.name = name
        self.oidc_subject = oidc_subject
        self.oidc_issuer = oidc_issuer
        self.auth_provider = auth_provider
        self.current_token = current_token
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()

    def authenticate(self, password: str) -> bool:
        """Проверка пароля пользователя"""
        return verify_password(password, self.password_hash)

    def set_password(self, password: str) -> None:
        self.password_hash = get_password_hash(password)
        self.updated_at = datetime.utcnow()

    def update_profile(self, name: Optional[str] = None, email: Optional[str] = None) -> None:
        """Обновление профиля пользователя"""
        if name:
            self.name = name
        if email:
            self.email = email
        self.updated_at = datetime.utcnow()

    def link_external_identity(self, issuer: str, subject: str) -> None:
        """Привязка внешней учетной записи к существующему аккаунту"""
        self.oidc_issuer = issuer
        self.oidc_subject = subject
        self.auth_provider = OIDC_PROVIDER
        self.updated_at = datetime.utcnow()

    def has_live_session(self, token: str) -> bool:
        return bool(self.current_token) and secrets.compare_digest(self.current_token, token)

    @classmethod
    def create_user(cls, email: str, password: str, name: str = "") -> "User":
        """Создание нового пользователя с хешированием пароля"""
        return cls(
            id=None,
            email=email,
            password_hash=get_password_hash(password),
            name=name
        )

    @classmethod
    def create_external_user(cls, email: str, name: str, issuer: str, subject: str) -> "User":
        """Аккаунт внешнего провайдера: локальный пароль случайный и никому не известен"""
        user = cls.create_user(email=email, password=generate_random_password(), name=name)
        user.link_external_identity(issuer, subject)
        return user

    def __eq__(self, other) -> bool:
        if not isinstance(other, User):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email}, provider={self.auth_provider})"
