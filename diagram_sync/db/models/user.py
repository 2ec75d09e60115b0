from datetime import datetime

from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship

from diagram_sync.db.base import BaseModel


class User(BaseModel):
    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False, default="")

    # Привязка к внешнему провайдеру (OIDC)
    oidc_subject = Column(String(255), unique=True, nullable=True)
    oidc_issuer = Column(String(512), nullable=True)
    auth_provider = Column(String(20), nullable=False, default="local")

    # Единственный действующий токен сессии
    current_token = Column(Text, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    diagrams = relationship("Diagram", back_populates="owner", cascade="all, delete-orphan")
