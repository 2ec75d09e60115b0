from diagram_sync.db.models.user import User
from diagram_sync.db.models.diagram import Diagram, DiagramVersion

__all__ = [
    "User",
    "Diagram",
    "DiagramVersion",
]
