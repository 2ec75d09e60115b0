from diagram_sync.db.repositories.user_repository import UserRepository
from diagram_sync.db.repositories.diagram_repository import DiagramRepository, DiagramVersionRepository

__all__ = [
    "UserRepository",
    "DiagramRepository",
    "DiagramVersionRepository"
]
