from datetime import datetime
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func

from diagram_sync.db.models.diagram import Diagram as DiagramModel, DiagramVersion as DiagramVersionModel
from diagram_sync.domains.diagrams.entities import Diagram, DiagramMetadata, DiagramVersion


class DiagramRepository:
    """Реестр диаграмм: (внешний ID, владелец) -> текущая запись диаграммы.

    Все выборки ограничены владельцем, поэтому чужая диаграмма
    неотличима от отсутствующей.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_external_id(
        self,
        owner_id: int,
        diagram_id: str,
        include_deleted: bool = False,
        for_update: bool = False
    ) -> Optional[Diagram]:
        """Поиск диаграммы по внешнему ID владельца"""
        query = select(DiagramModel).where(
            DiagramModel.user_id == owner_id,
            DiagramModel.diagram_id == diagram_id
        )

        if not include_deleted:
            query = query.where(DiagramModel.deleted_at.is_(None))

        # живая строка имеет приоритет над мягко удаленной
        query = query.order_by(DiagramModel.deleted_at.is_(None).desc(), DiagramModel.id.desc()).limit(1)

        if for_update:
            query = query.with_for_update()

        result = await self.session.execute(query)
        db_diagram = result.scalars().first()
        return self._to_domain(db_diagram) if db_diagram else None

    async def get_by_id(self, diagram_pk: int) -> Optional[Diagram]:
        result = await self.session.execute(
            select(DiagramModel).where(DiagramModel.id == diagram_pk)
        )
        db_diagram = result.scalar_one_or_none()
        return self._to_domain(db_diagram) if db_diagram else None

    async def create(self, owner_id: int, diagram_id: str, metadata: DiagramMetadata) -> Diagram:
        """Создание диаграммы со счетчиком версий 1"""
        diagram = Diagram.create_diagram(diagram_id, owner_id, metadata)

        db_diagram = DiagramModel(
            diagram_id=diagram.diagram_id,
            user_id=diagram.owner_id,
            name=diagram.name,
            database_type=diagram.database_type,
            database_edition=diagram.database_edition,
            version=diagram.version,
            created_at=diagram.created_at,
            updated_at=diagram.updated_at
        )

        self.session.add(db_diagram)
        await self.session.flush()
        await self.session.refresh(db_diagram)
        return self._to_domain(db_diagram)

    async def restore(self, diagram: Diagram, metadata: DiagramMetadata) -> Diagram:
        """Снятие пометки удаления, сброс счетчика в 1; внутренний ID сохраняется"""
        diagram.restore(metadata)
        return await self._save(diagram)

    async def bump_version(self, diagram: Diagram, metadata: Optional[DiagramMetadata] = None) -> Diagram:
        diagram.bump_version(metadata)
        return await self._save(diagram)

    async def touch(self, diagram: Diagram, metadata: Optional[DiagramMetadata] = None) -> Diagram:
        diagram.touch(metadata)
        return await self._save(diagram)

    async def soft_delete(self, diagram: Diagram) -> Diagram:
        diagram.soft_delete()
        return await self._save(diagram)

    async def list_for_owner(self, owner_id: int) -> List[Diagram]:
        """Неудаленные диаграммы владельца, последние измененные первыми"""
        result = await self.session.execute(
            select(DiagramModel)
            .where(
                DiagramModel.user_id == owner_id,
                DiagramModel.deleted_at.is_(None)
            )
            .order_by(DiagramModel.updated_at.desc(), DiagramModel.id.desc())
        )
        return [self._to_domain(diagram) for diagram in result.scalars().all()]

    async def delete(self, diagram: Diagram) -> bool:
        """Физическое удаление диаграммы вместе со всеми версиями"""
        await self.session.execute(
            delete(DiagramVersionModel).where(DiagramVersionModel.diagram_id == diagram.id)
        )
        result = await self.session.execute(
            delete(DiagramModel).where(DiagramModel.id == diagram.id)
        )
        return result.rowcount > 0

    async def _save(self, diagram: Diagram) -> Diagram:
        await self.session.execute(
            update(DiagramModel)
            .where(DiagramModel.id == diagram.id)
            .values(
                name=diagram.name,
                database_type=diagram.database_type,
                database_edition=diagram.database_edition,
                version=diagram.version,
                updated_at=diagram.updated_at,
                deleted_at=diagram.deleted_at
            )
        )
        return diagram

    def _to_domain(self, db_diagram: DiagramModel) -> Diagram:
        """Преобразование модели БД в доменную сущность"""
        return Diagram(
            id=db_diagram.id,
            diagram_id=db_diagram.diagram_id,
            owner_id=db_diagram.user_id,
            name=db_diagram.name,
            database_type=db_diagram.database_type,
            database_edition=db_diagram.database_edition,
            version=db_diagram.version,
            created_at=db_diagram.created_at,
            updated_at=db_diagram.updated_at,
            deleted_at=db_diagram.deleted_at
        )


class DiagramVersionRepository:
    """Хранилище версий: история полных снимков документа"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, version: DiagramVersion) -> DiagramVersion:
        """Создание новой версии диаграммы"""
        db_version = DiagramVersionModel(
            diagram_id=version.diagram_id,
            version=version.version,
            data=version.data,
            description=version.description,
            created_at=version.created_at
        )

        self.session.add(db_version)
        await self.session.flush()
        await self.session.refresh(db_version)
        return self._to_domain(db_version)

    async def get_by_number(self, diagram_pk: int, version_number: int) -> Optional[DiagramVersion]:
        """Получение версии по номеру"""
        result = await self.session.execute(
            select(DiagramVersionModel).where(
                DiagramVersionModel.diagram_id == diagram_pk,
                DiagramVersionModel.version == version_number
            )
        )
        db_version = result.scalar_one_or_none()
        return self._to_domain(db_version) if db_version else None

    async def get_latest(self, diagram_pk: int) -> Optional[DiagramVersion]:
        """Получение версии с наибольшим номером"""
        result = await self.session.execute(
            select(DiagramVersionModel)
            .where(DiagramVersionModel.diagram_id == diagram_pk)
            .order_by(DiagramVersionModel.version.desc())
            .limit(1)
        )
        db_version = result.scalar_one_or_none()
        return self._to_domain(db_version) if db_version else None

    async def list_for_diagram(self, diagram_pk: int) -> List[DiagramVersion]:
        """Версии диаграммы, новые первыми"""
        result = await self.session.execute(
            select(DiagramVersionModel)
            .where(DiagramVersionModel.diagram_id == diagram_pk)
            .order_by(DiagramVersionModel.version.desc())
        )
        return [self._to_domain(version) for version in result.scalars().all()]

    async def count_for_diagram(self, diagram_pk: int) -> int:
        """Подсчет количества версий диаграммы"""
        result = await self.session.execute(
            select(func.count(DiagramVersionModel.id))
            .where(DiagramVersionModel.diagram_id == diagram_pk)
        )
        return result.scalar()

    async def overwrite_data(self, version: DiagramVersion, data: str) -> DiagramVersion:
        """Замена содержимого версии на месте; номер версии не меняется"""
        version.data = data
        version.created_at = datetime.utcnow()
        await self.session.execute(
            update(DiagramVersionModel)
            .where(DiagramVersionModel.id == version.id)
            .values(data=version.data, created_at=version.created_at)
        )
        return version

    async def delete(self, version: DiagramVersion) -> None:
        await self.session.execute(
            delete(DiagramVersionModel).where(DiagramVersionModel.id == version.id)
        )

    async def delete_for_diagram(self, diagram_pk: int) -> int:
        """Удаление всей истории диаграммы"""
        result = await self.session.execute(
            delete(DiagramVersionModel).where(DiagramVersionModel.diagram_id == diagram_pk)
        )
        return result.rowcount

    async def prune(self, diagram_pk: int, keep: int) -> int:
        """Оставить только `keep` версий с наибольшими номерами"""
        result = await self.session.execute(
            select(DiagramVersionModel.id)
            .where(DiagramVersionModel.diagram_id == diagram_pk)
            .order_by(DiagramVersionModel.version.desc())
            .offset(keep)
        )
        stale_ids = list(result.scalars().all())
        if not stale_ids:
            return 0

        await self.session.execute(
            delete(DiagramVersionModel).where(DiagramVersionModel.id.in_(stale_ids))
        )
        return len(stale_ids)

    def _to_domain(self, db_version: DiagramVersionModel) -> DiagramVersion:
        """Преобразование модели БД в доменную сущность"""
        return DiagramVersion(
            id=db_version.id,
            diagram_id=db_version.diagram_id,
            version=db_version.version,
            data=db_version.data,
            description=db_version.description,
            created_at=db_version.created_at
        )
