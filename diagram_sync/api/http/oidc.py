import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from diagram_sync.core.auth import set_auth_cookie
from diagram_sync.core.config import settings
from diagram_sync.core.db import get_db
from diagram_sync.core.errors import ValidationError
from diagram_sync.core.oidc import OIDCClient, generate_state, get_oidc_client
from diagram_sync.domains.identity.linker import AccountLinker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/oidc", tags=["oidc"])

STATE_COOKIE = "oidc_state"
STATE_MAX_AGE = 600
POST_LOGIN_REDIRECT = "/sync/sync"


@router.get("/enabled")
async def oidc_enabled():
    return {"enabled": settings.oidc_enabled}


@router.get("/login")
async def oidc_login(client: OIDCClient = Depends(get_oidc_client)):
    """Перенаправление на страницу входа провайдера"""
    state = generate_state()
    url = await client.authorization_url(state)

    response = RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.set_cookie(
        key=STATE_COOKIE,
        value=state,
        max_age=STATE_MAX_AGE,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/callback")
async def oidc_callback(
    request: Request,
    client: OIDCClient = Depends(get_oidc_client),
    db: AsyncSession = Depends(get_db)
):
    """Возврат от провайдера: проверка state, обмен кода, вход"""
    expected_state = request.cookies.get(STATE_COOKIE)
    if not expected_state:
        raise ValidationError("State cookie not found")

    if request.query_params.get("state") != expected_state:
        raise ValidationError("Invalid state parameter")

    code = request.query_params.get("code")
    if not code:
        raise ValidationError("Authorization code not found")

    identity = await client.authenticate(code)
    user, token = await AccountLinker(db).login(identity)
    logger.info(f"User {user.id} signed in through {identity.issuer}")

    response = RedirectResponse(POST_LOGIN_REDIRECT, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.delete_cookie(key=STATE_COOKIE, path="/")
    set_auth_cookie(response, token)
    return response
