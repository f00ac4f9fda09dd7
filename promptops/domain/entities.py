"""
Entités du domaine métier.

Ce module définit les modèles de données retournés par les services (prompts, versions,
routeurs, datasets et enregistrements) ainsi que leurs entrées de création/mise à jour.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Champs de contenu versionnés d'un prompt (copiés dans chaque entrée du registre)
PROMPT_CONTENT_FIELDS = ("name", "provider", "model", "body")


class Prompt(BaseModel):
    """Tête d'un prompt (état courant dénormalisé)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    project_id: int
    name: str
    slug: str
    provider: str
    model: str
    body: str
    latest_version: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PromptVersion(BaseModel):
    """Instantané immuable d'un prompt à un numéro de version."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    prompt_id: int
    tenant_id: int
    project_id: int
    version: int
    name: str
    slug: str
    provider: str
    model: str
    body: str
    created_at: datetime


class PromptWithVersion(Prompt):
    """Prompt accompagné de l'entrée du registre à `latest_version`."""

    current_version: PromptVersion | None = None


class CreatePromptInput(BaseModel):
    """Données de création d'un prompt (version 1)."""

    name: str
    slug: str
    provider: str
    model: str
    body: str = "{}"


class UpdatePromptInput(BaseModel):
    """Mise à jour partielle: un champ absent (None) conserve sa valeur courante."""

    name: str | None = None
    provider: str | None = None
    model: str | None = None
    body: str | None = None


class DataSet(BaseModel):
    """Agrégat dataset avec compteur et TypeMap inférée."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    project_id: int
    name: str
    slug: str
    is_deleted: bool
    count_of_records: int
    type_map: dict[str, dict[str, str]] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class DataSetRecord(BaseModel):
    """Enregistrement d'un dataset."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    project_id: int
    data_set_id: int
    variables: dict[str, Any]
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


class PaginatedRecords(BaseModel):
    """Page d'enregistrements vivants, `total` provenant du compteur de l'agrégat."""

    records: list[DataSetRecord]
    total: int
    page: int
    page_size: int
    total_pages: int
