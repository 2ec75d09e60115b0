from diagram_sync.api.http.health import router as health_router
from diagram_sync.api.http.auth import router as auth_router
from diagram_sync.api.http.oidc import router as oidc_router
from diagram_sync.api.http.diagrams import router as diagrams_router

__all__ = [
    "health_router",
    "auth_router",
    "oidc_router",
    "diagrams_router"
]
