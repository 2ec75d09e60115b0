from datetime import datetime

from sqlalchemy import (
    Column, String, Text, Integer, ForeignKey, DateTime, Index, UniqueConstraint, text
)
from sqlalchemy.orm import relationship

from diagram_sync.db.base import BaseModel


class Diagram(BaseModel):
    __tablename__ = "diagrams"

    diagram_id = Column(String(255), nullable=False, index=True)  # внешний ID клиента
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    database_type = Column(Text, nullable=False, default="")
    database_edition = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True, index=True)

    # Relationships
    owner = relationship("User", back_populates="diagrams")
    versions = relationship(
        "DiagramVersion",
        back_populates="diagram",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # (внешний ID, владелец) уникальна только среди неудаленных диаграмм
        Index(
            "uq_diagrams_owner_diagram_live",
            "user_id",
            "diagram_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("ix_diagrams_owner_updated", "user_id", "updated_at"),
    )


class DiagramVersion(BaseModel):
    __tablename__ = "diagram_versions"

    diagram_id = Column(Integer, ForeignKey("diagrams.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    data = Column(Text, nullable=False)  # полный JSON-документ
    description = Column(Text, nullable=False, default="")

    # Relationships
    diagram = relationship("Diagram", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("diagram_id", "version", name="uq_diagram_versions_diagram_version"),
    )
