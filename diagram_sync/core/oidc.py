"""Клиент OpenID Connect (authorization code flow).

Discovery-документ и JWKS провайдера запрашиваются лениво и кешируются на
время жизни клиента. Подпись ID-токена проверяется python-jose.
"""
import logging
import secrets
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from jose import JWTError, jwt

from diagram_sync.core.config import settings
from diagram_sync.core.errors import AuthenticationRequiredError, ValidationError
from diagram_sync.domains.identity.schemas import ExternalIdentity

logger = logging.getLogger(__name__)

ID_TOKEN_ALGORITHMS = ["RS256", "RS384", "RS512", "ES256", "ES384", "ES512"]
HTTP_TIMEOUT = 10.0


def generate_state() -> str:
    return secrets.token_urlsafe(32)


class OIDCClient:
    """Обмен кода авторизации и проверка ID-токена"""

    def __init__(
        self,
        issuer_url: str,
        client_id: str,
        client_secret: str,
        redirect_url: str,
        scopes: List[str],
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.issuer_url = issuer_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url
        self.scopes = scopes
        self._http_client = http_client
        self._discovery: Optional[Dict[str, Any]] = None
        self._jwks: Optional[Dict[str, Any]] = None

    async def _get(self, url: str) -> Dict[str, Any]:
        if self._http_client is not None:
            response = await self._http_client.get(url)
        else:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                response = await client.get(url)
        response.raise_for_status()
        return response.json()

    async def _post_form(self, url: str, data: Dict[str, str]) -> Dict[str, Any]:
        if self._http_client is not None:
            response = await self._http_client.post(url, data=data)
        else:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                response = await client.post(url, data=data)
        response.raise_for_status()
        return response.json()

    async def discovery(self) -> Dict[str, Any]:
        if self._discovery is None:
            url = f"{self.issuer_url.rstrip('/')}/.well-known/openid-configuration"
            try:
                self._discovery = await self._get(url)
            except httpx.HTTPError as exc:
                logger.error(f"OIDC discovery failed for {self.issuer_url}: {exc}")
                raise AuthenticationRequiredError("Identity provider unavailable") from exc
        return self._discovery

    async def jwks(self) -> Dict[str, Any]:
        if self._jwks is None:
            config = await self.discovery()
            try:
                self._jwks = await self._get(config["jwks_uri"])
            except (httpx.HTTPError, KeyError) as exc:
                logger.error(f"Failed to load OIDC signing keys: {exc}")
                raise AuthenticationRequiredError("Identity provider unavailable") from exc
        return self._jwks

    async def authorization_url(self, state: str) -> str:
        config = await self.discovery()
        query = urlencode({
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_url,
            "scope": " ".join(self.scopes),
            "state": state,
        })
        return f"{config['authorization_endpoint']}?{query}"

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """Обмен кода авторизации на набор токенов"""
        config = await self.discovery()
        try:
            tokens = await self._post_form(config["token_endpoint"], {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_url,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            })
        except httpx.HTTPError as exc:
            logger.warning(f"OIDC code exchange failed: {exc}")
            raise AuthenticationRequiredError("Failed to exchange authorization code") from exc

        if not tokens.get("id_token"):
            raise AuthenticationRequiredError("No ID token in response")
        return tokens

    async def verify_id_token(self, id_token: str, access_token: Optional[str] = None) -> ExternalIdentity:
        """Проверка подписи, издателя и аудитории ID-токена"""
        keys = await self.jwks()
        try:
            claims = jwt.decode(
                id_token,
                keys,
                algorithms=ID_TOKEN_ALGORITHMS,
                audience=self.client_id,
                issuer=self.issuer_url,
                access_token=access_token,
            )
        except JWTError as exc:
            logger.warning(f"ID token rejected: {exc}")
            raise AuthenticationRequiredError("Failed to verify ID token") from exc

        subject = claims.get("sub")
        if not subject or not isinstance(subject, str):
            logger.warning("ID token rejected: missing subject claim")
            raise AuthenticationRequiredError("Failed to verify ID token")

        return ExternalIdentity(
            issuer=self.issuer_url,
            subject=subject,
            email=claims.get("email") or "",
            name=claims.get("name") or "",
        )

    async def authenticate(self, code: str) -> ExternalIdentity:
        tokens = await self.exchange_code(code)
        return await self.verify_id_token(tokens["id_token"], tokens.get("access_token"))


_client: Optional[OIDCClient] = None


def get_oidc_client() -> OIDCClient:
    """Зависимость FastAPI; клиент создается при первом обращении"""
    global _client

    if not settings.oidc_enabled:
        raise ValidationError("OIDC is not enabled")

    if _client is None:
        if not (settings.oidc_issuer_url and settings.oidc_client_id and settings.oidc_client_secret):
            logger.error("OIDC is enabled but missing required configuration")
            raise ValidationError("OIDC is not configured")
        _client = OIDCClient(
            issuer_url=settings.oidc_issuer_url,
            client_id=settings.oidc_client_id,
            client_secret=settings.oidc_client_secret,
            redirect_url=settings.oidc_redirect_url,
            scopes=settings.oidc_scope_list,
        )
    return _client
