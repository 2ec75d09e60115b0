from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from diagram_sync.core.config import settings
from diagram_sync.core.db import get_db
from diagram_sync.core.errors import AuthenticationRequiredError
from diagram_sync.core.security import extract_token_from_header
from diagram_sync.domains.identity.entities import User
from diagram_sync.domains.identity.sessions import SessionAuthority


def get_request_token(request: Request) -> Optional[str]:
    """Токен из cookie, иначе из заголовка Authorization"""
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        return token

    authorization = request.headers.get("Authorization")
    if not authorization:
        raise AuthenticationRequiredError()

    token = extract_token_from_header(authorization)
    if not token:
        raise AuthenticationRequiredError("Invalid authorization header format")

    return token


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> User:
    """Зависимость для получения текущего пользователя"""
    token = get_request_token(request)
    return await SessionAuthority(db).validate(token)


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.cookie_max_age,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
