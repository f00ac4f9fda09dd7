"""SQLAlchemy models for persistence layer (prompts, versions, routers, datasets).

Chaque ligne porte `tenant_id`/`project_id`, copiés du scope à la création et jamais modifiés.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


def utcnow() -> datetime:
    """Horodatage UTC courant (évalué à chaque insertion)."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class PromptORM(Base):
    """Tête d'un prompt: état courant dénormalisé et compteur `latest_version`."""

    __tablename__ = "prompts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False)
    project_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    provider = Column(String(64), nullable=False)
    model = Column(String(128), nullable=False)
    body = Column(Text, nullable=False, default="{}")
    latest_version = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("tenant_id", "project_id", "slug", name="uq_prompts_scope_slug"),
    )


class PromptVersionORM(Base):
    """Entrée immuable du registre de versions d'un prompt."""

    __tablename__ = "prompt_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    prompt_id = Column(
        Integer, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id = Column(Integer, nullable=False)
    project_id = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    provider = Column(String(64), nullable=False)
    model = Column(String(128), nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id",
            "project_id",
            "prompt_id",
            "version",
            name="uq_prompt_versions_scope_prompt_version",
        ),
    )


class PromptRouterORM(Base):
    """Pointeur mutable vers la version active d'un prompt (une ligne max par prompt)."""

    __tablename__ = "prompt_routers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    prompt_id = Column(
        Integer, ForeignKey("prompts.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id = Column(Integer, nullable=False)
    project_id = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "project_id", "prompt_id", name="uq_prompt_routers_scope_prompt"
        ),
    )


class DataSetORM(Base):
    """Agrégat dataset: compteur d'enregistrements vivants et schéma inféré."""

    __tablename__ = "datasets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False)
    project_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), nullable=False)
    is_deleted = Column(Boolean, nullable=False, default=False)
    count_of_records = Column(Integer, nullable=False, default=0)
    type_map = Column("schema", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("ix_datasets_scope_slug", "tenant_id", "project_id", "slug"),)


class DataSetRecordORM(Base):
    """Enregistrement d'un dataset (suppression logique uniquement)."""

    __tablename__ = "dataset_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, nullable=False)
    project_id = Column(Integer, nullable=False)
    data_set_id = Column(
        Integer, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=False
    )
    variables = Column(JSON, nullable=False, default=dict)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index(
            "ix_dataset_records_scope_dataset",
            "tenant_id",
            "project_id",
            "data_set_id",
            "is_deleted",
        ),
    )
