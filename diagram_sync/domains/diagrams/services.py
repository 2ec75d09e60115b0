"""Координатор синхронизации диаграмм.

Три пишущих протокола (push, sync, snapshot) и чтения (pull, pull-all)
поверх реестра диаграмм и хранилища версий. Каждая запись выполняется в
одной транзакции: при любой ошибке откатывается весь вызов.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from diagram_sync.core.config import settings
from diagram_sync.core.db import transaction
from diagram_sync.core.errors import NotFoundError, StorageError, ValidationError
from diagram_sync.db.repositories.diagram_repository import DiagramRepository, DiagramVersionRepository
from diagram_sync.domains.diagrams.entities import Diagram, DiagramVersion
from diagram_sync.domains.diagrams.schemas import DiagramPayload

logger = logging.getLogger(__name__)

CREATED = "created"
RESTORED = "restored"
UPDATED = "updated"
SYNCED = "synced"

INITIAL_SYNC_DESCRIPTION = "Initial sync"
MANUAL_SNAPSHOT_DESCRIPTION = "Manual snapshot"


@dataclass
class SyncOutcome:
    """Результат пишущего протокола"""
    status: str
    diagram: Diagram
    version: int

    @property
    def is_new(self) -> bool:
        return self.status == CREATED


def parse_version_number(value: Union[str, int, None]) -> Optional[int]:
    """Номер версии из запроса: целое >= 1 или None"""
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid version number")
    if number < 1:
        raise ValidationError("Invalid version number")
    return number


def decode_document(document: Union[str, bytes]) -> str:
    if isinstance(document, bytes):
        try:
            return document.decode("utf-8")
        except UnicodeDecodeError:
            raise ValidationError("Diagram payload must be UTF-8 encoded JSON")
    return document


class DiagramSyncService:
    """Сервис синхронизации и истории версий диаграмм"""

    def __init__(self, session: AsyncSession, retention: Optional[int] = None):
        self.session = session
        self.diagram_repository = DiagramRepository(session)
        self.version_repository = DiagramVersionRepository(session)
        self.retention = retention or settings.version_retention

    # Пишущие протоколы

    async def push(self, owner_id: int, document: Union[str, bytes]) -> SyncOutcome:
        """Явное сохранение: каждая отправка создает новую версию"""
        data = decode_document(document)
        payload = DiagramPayload.from_document(data)
        metadata = payload.to_metadata()

        async with transaction(self.session):
            diagram = await self.diagram_repository.find_by_external_id(
                owner_id, payload.id, include_deleted=True, for_update=True
            )

            if diagram is None:
                diagram = await self.diagram_repository.create(owner_id, payload.id, metadata)
                await self._write_version(diagram, data, metadata.description)
                outcome = SyncOutcome(CREATED, diagram, diagram.version)

            elif diagram.is_deleted:
                # история прошлой жизни идентификатора отбрасывается
                await self.version_repository.delete_for_diagram(diagram.id)
                diagram = await self.diagram_repository.restore(diagram, metadata)
                await self._write_version(diagram, data, metadata.description)
                outcome = SyncOutcome(RESTORED, diagram, diagram.version)

            else:
                diagram = await self.diagram_repository.bump_version(diagram, metadata)
                await self._write_version(diagram, data, metadata.description)
                await self._enforce_retention(diagram)
                outcome = SyncOutcome(UPDATED, diagram, diagram.version)

        logger.info(f"Push {outcome.status}: diagram {diagram.diagram_id} of user {owner_id} at version {outcome.version}")
        return outcome

    async def sync(self, owner_id: int, document: Union[str, bytes]) -> SyncOutcome:
        """Фоновое сохранение: содержимое последней версии заменяется на месте"""
        data = decode_document(document)
        payload = DiagramPayload.from_document(data)
        metadata = payload.to_metadata()

        async with transaction(self.session):
            # мягко удаленные диаграммы sync не восстанавливает
            diagram = await self.diagram_repository.find_by_external_id(
                owner_id, payload.id, for_update=True
            )

            if diagram is None:
                diagram = await self.diagram_repository.create(owner_id, payload.id, metadata)
                await self._write_version(diagram, data, INITIAL_SYNC_DESCRIPTION)
                outcome = SyncOutcome(CREATED, diagram, diagram.version)
            else:
                diagram = await self.diagram_repository.touch(diagram, metadata)
                current = await self.version_repository.get_by_number(diagram.id, diagram.version)
                if current is None:
                    logger.warning(f"Diagram {diagram.id} has no row for version {diagram.version}, recreating it")
                    await self._write_version(diagram, data, metadata.description)
                else:
                    await self.version_repository.overwrite_data(current, data)
                outcome = SyncOutcome(SYNCED, diagram, diagram.version)

        logger.debug(f"Sync {outcome.status}: diagram {diagram.diagram_id} of user {owner_id} at version {outcome.version}")
        return outcome

    async def snapshot(self, owner_id: int, diagram_id: str, description: Optional[str] = None) -> SyncOutcome:
        """Ручная контрольная точка: копия последней версии под новым номером"""
        async with transaction(self.session):
            diagram = await self._get_live_diagram(owner_id, diagram_id, for_update=True)

            latest = await self.version_repository.get_latest(diagram.id)
            if latest is None:
                raise NotFoundError("Version not found")

            diagram = await self.diagram_repository.bump_version(diagram)
            await self._write_version(diagram, latest.data, description or MANUAL_SNAPSHOT_DESCRIPTION)
            await self._enforce_retention(diagram)

        logger.info(f"Snapshot of diagram {diagram.diagram_id} of user {owner_id} at version {diagram.version}")
        return SyncOutcome(UPDATED, diagram, diagram.version)

    async def delete_version(self, owner_id: int, diagram_id: str, version_number: int) -> int:
        """Удаление исторической версии (не единственной и не последней)"""
        async with transaction(self.session):
            diagram = await self._get_live_diagram(owner_id, diagram_id, for_update=True)

            if await self.version_repository.count_for_diagram(diagram.id) <= 1:
                raise ValidationError("Cannot delete the only remaining version")

            if version_number == diagram.version:
                raise ValidationError("Cannot delete the latest version. Create a new snapshot first.")

            version = await self.version_repository.get_by_number(diagram.id, version_number)
            if version is None:
                raise NotFoundError("Version not found")

            await self.version_repository.delete(version)

        logger.info(f"Deleted version {version_number} of diagram {diagram_id} of user {owner_id}")
        return version_number

    async def delete_diagram(self, owner_id: int, diagram_id: str) -> None:
        """Физическое удаление диаграммы и всей ее истории"""
        async with transaction(self.session):
            diagram = await self._get_live_diagram(owner_id, diagram_id, for_update=True)
            await self.diagram_repository.delete(diagram)

        logger.info(f"Deleted diagram {diagram_id} of user {owner_id}")

    async def archive_diagram(self, owner_id: int, diagram_id: str) -> Diagram:
        """Мягкое удаление: строки остаются, следующий push восстановит диаграмму"""
        async with transaction(self.session):
            diagram = await self._get_live_diagram(owner_id, diagram_id, for_update=True)
            diagram = await self.diagram_repository.soft_delete(diagram)

        logger.info(f"Archived diagram {diagram_id} of user {owner_id}")
        return diagram

    # Чтение

    async def pull(self, owner_id: int, diagram_id: str, version_number: Optional[int] = None) -> Dict[str, Any]:
        """Документ конкретной или последней версии с номером версии"""
        diagram = await self._get_live_diagram(owner_id, diagram_id)

        if version_number is not None:
            version = await self.version_repository.get_by_number(diagram.id, version_number)
        else:
            version = await self.version_repository.get_latest(diagram.id)

        if version is None:
            raise NotFoundError("Version not found")

        try:
            document = version.load_document()
        except ValueError:
            logger.error(f"Stored document of diagram {diagram.id} version {version.version} is corrupt")
            raise StorageError("Failed to parse diagram data")

        document["version"] = version.version
        return document

    async def pull_all(self, owner_id: int) -> List[Dict[str, Any]]:
        """Все диаграммы для начальной синхронизации; битые записи пропускаются"""
        documents = []

        for diagram in await self.diagram_repository.list_for_owner(owner_id):
            version = await self.version_repository.get_latest(diagram.id)
            if version is None:
                logger.warning(f"Skipping diagram {diagram.id}: no versions")
                continue

            try:
                document = version.load_document()
            except ValueError:
                logger.warning(f"Skipping diagram {diagram.id}: corrupt document in version {version.version}")
                continue

            document["version"] = diagram.version
            document["server_id"] = diagram.id
            documents.append(document)

        return documents

    async def list_diagrams(self, owner_id: int) -> List[Diagram]:
        return await self.diagram_repository.list_for_owner(owner_id)

    async def get_diagram(self, owner_id: int, diagram_id: str) -> Diagram:
        return await self._get_live_diagram(owner_id, diagram_id)

    async def list_versions(self, owner_id: int, diagram_id: str) -> List[DiagramVersion]:
        diagram = await self._get_live_diagram(owner_id, diagram_id)
        return await self.version_repository.list_for_diagram(diagram.id)

    # Вспомогательные

    async def _get_live_diagram(self, owner_id: int, diagram_id: str, for_update: bool = False) -> Diagram:
        diagram = await self.diagram_repository.find_by_external_id(owner_id, diagram_id, for_update=for_update)
        if diagram is None:
            raise NotFoundError("Diagram not found")
        return diagram

    async def _write_version(self, diagram: Diagram, data: str, description: str) -> DiagramVersion:
        version = DiagramVersion.create_version(
            diagram_id=diagram.id,
            version=diagram.version,
            data=data,
            description=description
        )
        return await self.version_repository.create(version)

    async def _enforce_retention(self, diagram: Diagram) -> None:
        removed = await self.version_repository.prune(diagram.id, self.retention)
        if removed:
            logger.debug(f"Pruned {removed} old versions of diagram {diagram.id}")
