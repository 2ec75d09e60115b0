from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./diagram_sync.db"
    sql_echo: bool = False
    auto_create_tables: bool = True

    jwt_secret: str = "diagram-sync-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "diagram-sync"
    token_expire_days: int = 7

    auth_cookie_name: str = "auth_token"
    cookie_secure: bool = False
    bcrypt_rounds: int = 12

    # Сколько версий хранится на одну диаграмму
    version_retention: int = 10

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    # OpenID Connect
    oidc_enabled: bool = False
    oidc_issuer_url: str = ""
    oidc_client_id: str = ""
    oidc_client_secret: str = ""
    oidc_redirect_url: str = ""
    oidc_scopes: str = "openid,profile,email"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def oidc_scope_list(self) -> List[str]:
        return [scope.strip() for scope in self.oidc_scopes.split(",") if scope.strip()]

    @property
    def cookie_max_age(self) -> int:
        return self.token_expire_days * 24 * 60 * 60


settings = Settings()
