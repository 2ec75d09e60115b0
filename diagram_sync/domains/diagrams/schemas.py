from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from diagram_sync.core.errors import ValidationError
from diagram_sync.domains.diagrams.entities import Diagram, DiagramMetadata, DiagramVersion

# длина колонки diagrams.diagram_id
MAX_DIAGRAM_ID_LENGTH = 255


class DiagramPayload(BaseModel):
    """Метаданные, извлекаемые из документа диаграммы.

    Таблицы, связи, области, заметки и пользовательские типы движок не
    разбирает: документ сохраняется целиком в исходном виде.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(..., min_length=1, max_length=MAX_DIAGRAM_ID_LENGTH)
    name: str = Field(..., min_length=1)
    database_type: Optional[str] = Field("", alias="databaseType")
    database_edition: Optional[str] = Field(None, alias="databaseEdition")
    description: Optional[str] = ""

    @field_validator('id', 'name')
    @classmethod
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Field cannot be empty')
        return v

    def to_metadata(self) -> DiagramMetadata:
        return DiagramMetadata(
            name=self.name,
            database_type=self.database_type or "",
            database_edition=self.database_edition or None,
            description=self.description or ""
        )

    @classmethod
    def from_document(cls, document: Union[str, bytes]) -> "DiagramPayload":
        """Проверка тела запроса; ошибки превращаются в ValidationError домена"""
        try:
            return cls.model_validate_json(document)
        except PydanticValidationError as exc:
            errors = exc.errors()
            if errors:
                first = errors[0]
                location = ".".join(str(part) for part in first.get("loc", ()))
                message = f"{location}: {first.get('msg')}" if location else first.get("msg")
            else:
                message = "Invalid diagram payload"
            raise ValidationError(message)


class DiagramSummary(BaseModel):
    """Метаданные диаграммы в списке"""
    id: int
    diagram_id: str
    name: str
    database_type: str
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, diagram: Diagram) -> "DiagramSummary":
        return cls(
            id=diagram.id,
            diagram_id=diagram.diagram_id,
            name=diagram.name,
            database_type=diagram.database_type or "",
            version=diagram.version,
            created_at=diagram.created_at,
            updated_at=diagram.updated_at
        )


class VersionSummary(BaseModel):
    id: int
    version: int
    description: str
    created_at: datetime

    @classmethod
    def from_entity(cls, version: DiagramVersion) -> "VersionSummary":
        return cls(
            id=version.id,
            version=version.version,
            description=version.description or "",
            created_at=version.created_at
        )


class PushResponse(BaseModel):
    message: str
    diagram_id: str
    version: int
    status: str


class SyncResponse(BaseModel):
    message: str
    diagram_id: str
    version: int
    is_new: bool


class SnapshotRequest(BaseModel):
    description: Optional[str] = ""


class SnapshotResponse(BaseModel):
    message: str
    diagram_id: str
    version: int


class DeleteVersionResponse(BaseModel):
    message: str
    version: int


class PullAllResponse(BaseModel):
    diagrams: List[Dict[str, Any]]
    count: int
