from fastapi import APIRouter

from diagram_sync.api.http import auth_router, diagrams_router, oidc_router

api_router = APIRouter(prefix="/sync/api")
api_router.include_router(auth_router)
api_router.include_router(oidc_router)
api_router.include_router(diagrams_router)
