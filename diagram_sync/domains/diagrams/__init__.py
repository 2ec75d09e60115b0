from diagram_sync.domains.diagrams.entities import Diagram, DiagramMetadata, DiagramVersion
from diagram_sync.domains.diagrams.schemas import (
    DiagramPayload, DiagramSummary, VersionSummary, PushResponse, SyncResponse,
    SnapshotRequest, SnapshotResponse, DeleteVersionResponse, PullAllResponse
)

__all__ = [
    "Diagram", "DiagramMetadata", "DiagramVersion",
    "DiagramPayload", "DiagramSummary", "VersionSummary", "PushResponse", "SyncResponse",
    "SnapshotRequest", "SnapshotResponse", "DeleteVersionResponse", "PullAllResponse"
]
