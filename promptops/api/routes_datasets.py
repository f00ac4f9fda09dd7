"""
Routes des datasets et de leurs enregistrements.

Expose `/projects/{project_id}/datasets` : création et lecture des datasets, ajout unitaire
ou en lot d'enregistrements, pagination, suppression logique d'enregistrements et du dataset.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends

from promptops.api.deps import (
    Pagination,
    get_dataset_ref,
    get_dataset_service,
    get_pagination,
    get_scope,
)
from promptops.api.schemas import (
    CreateDataSetRequest,
    CreateRecordRequest,
    CreateRecordsRequest,
    DataSetListResponse,
    DataSetOut,
    DataSetResponse,
    DeleteRecordsRequest,
    DeleteRecordsResponse,
    PaginatedRecordsResponse,
    RecordListResponse,
    RecordResponse,
    SuccessResponse,
)
from promptops.core.http_constants import HTTP_CREATED
from promptops.domain.errors import ValidationError
from promptops.domain.tenancy import MAX_ID, EntityRef, ProjectScope
from promptops.services.dataset_service import DataSetService

router = APIRouter(prefix="/projects/{project_id}/datasets", tags=["datasets"])
scope_dep = Depends(get_scope)
dataset_dep = Depends(get_dataset_ref)
service_dep = Depends(get_dataset_service)


def _positive_ids(values: list[Any]) -> list[int]:
    """Garde les identifiants entiers dans 1..MAX_ID (entiers ou chaînes numériques)."""
    ids: list[int] = []
    for value in values:
        if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
            continue
        try:
            parsed = int(value)
        except (TypeError, ValueError, OverflowError):
            continue
        if 0 < parsed <= MAX_ID:
            ids.append(parsed)
    return ids


@router.get("", response_model=DataSetListResponse)
def list_datasets(scope: ProjectScope = scope_dep, service: DataSetService = service_dep):
    return {"datasets": [DataSetOut.from_entity(d) for d in service.list_datasets(scope)]}


@router.post("", response_model=DataSetResponse, status_code=HTTP_CREATED)
def create_dataset(
    payload: CreateDataSetRequest,
    scope: ProjectScope = scope_dep,
    service: DataSetService = service_dep,
):
    """
    Crée un dataset vide (compteur à 0).

    Le slug est dérivé du nom et dédoublonné (`x`, `x-2`, ...); `schema` optionnel.
    """
    name = payload.name.strip()
    if not name:
        raise ValidationError("Name is required")
    dataset = service.create_dataset(scope, name, payload.schema_)
    return {"dataset": DataSetOut.from_entity(dataset)}


@router.get("/{dataset_id}", response_model=DataSetResponse)
def get_dataset(ref: EntityRef = dataset_dep, service: DataSetService = service_dep):
    return {"dataset": DataSetOut.from_entity(service.get_dataset(ref))}


@router.delete("/{dataset_id}", response_model=SuccessResponse)
def delete_dataset(ref: EntityRef = dataset_dep, service: DataSetService = service_dep):
    """Suppression logique du dataset; 404 s'il n'est pas visible sous ce scope."""
    service.get_dataset(ref)
    service.delete_dataset(ref)
    return SuccessResponse()


@router.get("/{dataset_id}/records", response_model=PaginatedRecordsResponse)
def list_records(
    ref: EntityRef = dataset_dep,
    pagination: Pagination = Depends(get_pagination),
    service: DataSetService = service_dep,
):
    """
    Page d'enregistrements vivants, les plus récents d'abord.

    Query: `page` (>= 1, défaut 1), `page_size` (bornes configurées, défaut 10).
    `total` provient du compteur du dataset.
    """
    return service.list_records_paginated(ref, pagination.page, pagination.size)


@router.post("/{dataset_id}/records", response_model=RecordResponse, status_code=HTTP_CREATED)
def create_record(
    payload: CreateRecordRequest,
    ref: EntityRef = dataset_dep,
    service: DataSetService = service_dep,
):
    """Ajoute un enregistrement: compteur +1 et schéma replié dans la même transaction."""
    return {"record": service.create_record(ref, payload.variables)}


@router.post(
    "/{dataset_id}/records/batch",
    response_model=RecordListResponse,
    status_code=HTTP_CREATED,
)
def create_records(
    payload: CreateRecordsRequest,
    ref: EntityRef = dataset_dep,
    service: DataSetService = service_dep,
):
    return {"records": service.add_records(ref, payload.records)}


@router.delete("/{dataset_id}/records", response_model=DeleteRecordsResponse)
def delete_records(
    payload: DeleteRecordsRequest = Body(...),
    ref: EntityRef = dataset_dep,
    service: DataSetService = service_dep,
):
    """
    Supprime logiquement des enregistrements.

    Les ids déjà supprimés ou étrangers au dataset sont ignorés; `deleted` compte les
    suppressions effectives.
    """
    record_ids = _positive_ids(payload.record_ids)
    if not record_ids:
        raise ValidationError("Record IDs are required")
    result = service.delete_records(ref, record_ids)
    return DeleteRecordsResponse(deleted=result["deleted"])
