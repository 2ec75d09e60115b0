import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class DiagramMetadata:
    """Поля документа, которые движок читает; остальное хранится как есть"""
    name: str
    database_type: str = ""
    database_edition: Optional[str] = None
    description: str = ""


class Diagram:
    """Сущность диаграммы: текущее состояние и счетчик версий"""

    def __init__(
        self,
        id: Optional[int],
        diagram_id: str,
        owner_id: int,
        name: str,
        database_type: str = "",
        database_edition: Optional[str] = None,
        version: int = 1,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        deleted_at: Optional[datetime] = None
    ):
        self.id = id
        self.diagram_id = diagram_id
        self.owner_id = owner_id
        self.name = name
        self.database_type = database_type
        self.database_edition = database_edition
        self.version = version
        self.created_at = created_at or datetime.utcnow()
        self.updated_at = updated_at or datetime.utcnow()
        self.deleted_at = deleted_at

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def apply_metadata(self, metadata: DiagramMetadata) -> None:
        self.name = metadata.name
        self.database_type = metadata.database_type
        self.database_edition = metadata.database_edition

    def touch(self, metadata: Optional[DiagramMetadata] = None) -> None:
        """Обновление метаданных без изменения счетчика версий"""
        if metadata is not None:
            self.apply_metadata(metadata)
        self.updated_at = datetime.utcnow()

    def bump_version(self, metadata: Optional[DiagramMetadata] = None) -> int:
        """Увеличение счетчика версий"""
        self.touch(metadata)
        self.version += 1
        return self.version

    def restore(self, metadata: DiagramMetadata) -> None:
        """Восстановление мягко удаленной диаграммы: счетчик сбрасывается в 1"""
        self.deleted_at = None
        self.version = 1
        self.touch(metadata)

    def soft_delete(self) -> None:
        now = datetime.utcnow()
        self.deleted_at = now
        self.updated_at = now

    @classmethod
    def create_diagram(cls, diagram_id: str, owner_id: int, metadata: DiagramMetadata) -> "Diagram":
        """Создание новой диаграммы с версией 1"""
        return cls(
            id=None,
            diagram_id=diagram_id,
            owner_id=owner_id,
            name=metadata.name,
            database_type=metadata.database_type,
            database_edition=metadata.database_edition,
            version=1
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Diagram):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return f"Diagram(id={self.id}, diagram_id={self.diagram_id}, version={self.version})"


class DiagramVersion:
    """Неизменяемый снимок документа диаграммы"""

    def __init__(
        self,
        id: Optional[int],
        diagram_id: int,
        version: int,
        data: str,
        description: str = "",
        created_at: Optional[datetime] = None
    ):
        self.id = id
        self.diagram_id = diagram_id
        self.version = version
        self.data = data
        self.description = description
        self.created_at = created_at or datetime.utcnow()

    def load_document(self) -> Dict[str, Any]:
        """Разбор сохраненного документа; ValueError если он поврежден"""
        document = json.loads(self.data)
        if not isinstance(document, dict):
            raise ValueError("Stored document is not a JSON object")
        return document

    @classmethod
    def create_version(
        cls,
        diagram_id: int,
        version: int,
        data: str,
        description: str = ""
    ) -> "DiagramVersion":
        """Создание новой версии диаграммы"""
        return cls(
            id=None,
            diagram_id=diagram_id,
            version=version,
            data=data,
            description=description or ""
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, DiagramVersion):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return f"DiagramVersion(id={self.id}, diagram_id={self.diagram_id}, version={self.version})"
