# Schémas Pydantic exposés par l'API (requêtes et réponses).

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from promptops.domain.entities import DataSet, PromptVersion


class CreatePromptRequest(BaseModel):
    """Création d'un prompt (version 1).

    Champs:
    - name, slug, provider, model: obligatoires, non vides
    - body: contenu sérialisé (JSON en texte), "{}" par défaut
    """

    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    provider: str = Field(min_length=1)
    model: str = Field(min_length=1)
    body: str = "{}"


class UpdatePromptRequest(BaseModel):
    """Mise à jour partielle: chaque champ omis conserve sa valeur courante."""

    name: str | None = None
    provider: str | None = None
    model: str | None = None
    body: str | None = None


class RenamePromptRequest(BaseModel):
    name: str = Field(min_length=1)


class SetRouterRequest(BaseModel):
    version: int = Field(ge=1)


class PromptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    provider: str
    model: str
    body: str
    latest_version: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PromptVersionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    prompt_id: int
    version: int
    name: str
    slug: str
    provider: str
    model: str
    body: str
    created_at: datetime


class PromptDetailOut(PromptOut):
    current_version: PromptVersionOut | None = None


class PromptResponse(BaseModel):
    prompt: PromptOut


class PromptDetailResponse(BaseModel):
    prompt: PromptDetailOut


class PromptListResponse(BaseModel):
    prompts: list[PromptOut]


class VersionListResponse(BaseModel):
    versions: list[PromptVersionOut]


class VersionResponse(BaseModel):
    version: PromptVersionOut


class RouterVersionResponse(BaseModel):
    router_version: int | None


class RouterSetResponse(BaseModel):
    success: bool = True
    router_version: int


class SuccessResponse(BaseModel):
    success: bool = True


class PublicVersionResponse(BaseModel):
    """Version servie aux couches d'exécution: `body` est le JSON décodé."""

    version: int
    name: str
    slug: str
    body: Any
    created_at: datetime

    @classmethod
    def from_entry(cls, entry: PromptVersion, body: Any) -> "PublicVersionResponse":
        return cls(
            version=entry.version,
            name=entry.name,
            slug=entry.slug,
            body=body,
            created_at=entry.created_at,
        )


# -- datasets -------------------------------------------------------------


class CreateDataSetRequest(BaseModel):
    """Création d'un dataset; `schema` accepte une TypeMap, `{"fields": ...}` ou leur JSON."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    schema_: dict[str, Any] | str | None = Field(default=None, alias="schema")


class CreateRecordRequest(BaseModel):
    variables: dict[str, Any]


class CreateRecordsRequest(BaseModel):
    records: list[dict[str, Any]] = Field(min_length=1)


class DeleteRecordsRequest(BaseModel):
    # ids bruts: les valeurs non entières ou <= 0 sont écartées par la route
    record_ids: list[Any] = Field(default_factory=list)


class DataSetSchemaOut(BaseModel):
    fields: dict[str, dict[str, str]]


class DataSetOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    slug: str
    count_of_records: int
    schema_: DataSetSchemaOut = Field(alias="schema")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, dataset: DataSet) -> "DataSetOut":
        return cls(
            id=dataset.id,
            name=dataset.name,
            slug=dataset.slug,
            count_of_records=dataset.count_of_records,
            schema_=DataSetSchemaOut(fields=dataset.type_map),
            created_at=dataset.created_at,
            updated_at=dataset.updated_at,
        )


class DataSetRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    data_set_id: int
    variables: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class DataSetResponse(BaseModel):
    dataset: DataSetOut


class DataSetListResponse(BaseModel):
    datasets: list[DataSetOut]


class RecordResponse(BaseModel):
    record: DataSetRecordOut


class RecordListResponse(BaseModel):
    records: list[DataSetRecordOut]


class PaginatedRecordsResponse(BaseModel):
    records: list[DataSetRecordOut]
    total: int
    page: int
    page_size: int
    total_pages: int


class DeleteRecordsResponse(BaseModel):
    success: bool = True
    deleted: int
