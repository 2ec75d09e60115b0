from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from diagram_sync.core.auth import get_current_user
from diagram_sync.core.db import get_db
from diagram_sync.domains.diagrams.schemas import (
    DeleteVersionResponse, DiagramSummary, PullAllResponse, PushResponse,
    SnapshotRequest, SnapshotResponse, SyncResponse, VersionSummary
)
from diagram_sync.domains.diagrams.services import (
    CREATED, RESTORED, DiagramSyncService, parse_version_number
)
from diagram_sync.domains.identity.entities import User

router = APIRouter(prefix="/diagrams", tags=["diagrams"])

PUSH_MESSAGES = {
    CREATED: "Diagram created successfully",
    RESTORED: "Diagram restored successfully",
}


@router.post("/push", response_model=PushResponse)
async def push_diagram(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Явное сохранение: новая версия на каждый вызов"""
    outcome = await DiagramSyncService(db).push(current_user.id, await request.body())

    if outcome.is_new:
        response.status_code = status.HTTP_201_CREATED

    return PushResponse(
        message=PUSH_MESSAGES.get(outcome.status, "Diagram updated successfully"),
        diagram_id=outcome.diagram.diagram_id,
        version=outcome.version,
        status=outcome.status
    )


@router.post("/sync", response_model=SyncResponse)
async def sync_diagram(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Фоновое сохранение без увеличения номера версии"""
    outcome = await DiagramSyncService(db).sync(current_user.id, await request.body())

    if outcome.is_new:
        response.status_code = status.HTTP_201_CREATED

    return SyncResponse(
        message="Diagram synced successfully",
        diagram_id=outcome.diagram.diagram_id,
        version=outcome.version,
        is_new=outcome.is_new
    )


@router.get("/pull-all", response_model=PullAllResponse)
async def pull_all_diagrams(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Все диаграммы пользователя с последними документами"""
    documents = await DiagramSyncService(db).pull_all(current_user.id)
    return PullAllResponse(diagrams=documents, count=len(documents))


@router.get("/pull/{diagram_id}")
async def pull_diagram(
    diagram_id: str,
    version: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Документ последней или указанной версии"""
    version_number = parse_version_number(version)
    return await DiagramSyncService(db).pull(current_user.id, diagram_id, version_number)


@router.get("", response_model=List[DiagramSummary])
async def list_diagrams(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    diagrams = await DiagramSyncService(db).list_diagrams(current_user.id)
    return [DiagramSummary.from_entity(diagram) for diagram in diagrams]


@router.get("/{diagram_id}", response_model=DiagramSummary)
async def get_diagram(
    diagram_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    diagram = await DiagramSyncService(db).get_diagram(current_user.id, diagram_id)
    return DiagramSummary.from_entity(diagram)


@router.delete("/{diagram_id}")
async def delete_diagram(
    diagram_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Удаление диаграммы вместе со всей историей"""
    await DiagramSyncService(db).delete_diagram(current_user.id, diagram_id)
    return {"message": "Diagram deleted successfully"}


@router.post("/{diagram_id}/archive")
async def archive_diagram(
    diagram_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Скрытие диаграммы; следующий push восстановит ее"""
    await DiagramSyncService(db).archive_diagram(current_user.id, diagram_id)
    return {"message": "Diagram archived successfully"}


@router.get("/{diagram_id}/versions", response_model=List[VersionSummary])
async def list_versions(
    diagram_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    versions = await DiagramSyncService(db).list_versions(current_user.id, diagram_id)
    return [VersionSummary.from_entity(version) for version in versions]


@router.post("/{diagram_id}/snapshot", response_model=SnapshotResponse, status_code=status.HTTP_201_CREATED)
async def create_snapshot(
    diagram_id: str,
    snapshot: Optional[SnapshotRequest] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Копия последней версии под новым номером"""
    description = snapshot.description if snapshot else None
    outcome = await DiagramSyncService(db).snapshot(current_user.id, diagram_id, description)

    return SnapshotResponse(
        message="Snapshot created successfully",
        diagram_id=outcome.diagram.diagram_id,
        version=outcome.version
    )


@router.delete("/{diagram_id}/versions/{version}", response_model=DeleteVersionResponse)
async def delete_version(
    diagram_id: str,
    version: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    version_number = parse_version_number(version)
    deleted = await DiagramSyncService(db).delete_version(current_user.id, diagram_id, version_number)
    return DeleteVersionResponse(message="Version deleted successfully", version=deleted)
