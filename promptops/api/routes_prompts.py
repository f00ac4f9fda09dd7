"""
Routes des prompts: têtes, registre de versions et routeur de version active.

Ce module regroupe les endpoints `/projects/{project_id}/prompts` : création, lecture,
mise à jour (nouvelle version), désactivation, historique, routeur (rollback/rollout),
copie et renommage.
"""

from fastapi import APIRouter, Depends

from promptops.api.deps import get_prompt_ref, get_prompt_service, get_scope
from promptops.api.schemas import (
    CreatePromptRequest,
    PromptDetailResponse,
    PromptListResponse,
    PromptResponse,
    RenamePromptRequest,
    RouterSetResponse,
    RouterVersionResponse,
    SetRouterRequest,
    SuccessResponse,
    UpdatePromptRequest,
    VersionListResponse,
    VersionResponse,
)
from promptops.core.http_constants import HTTP_CREATED
from promptops.domain.entities import CreatePromptInput, UpdatePromptInput
from promptops.domain.tenancy import EntityRef, ProjectScope, parse_positive_id
from promptops.services.prompt_service import PromptService

router = APIRouter(prefix="/projects/{project_id}/prompts", tags=["prompts"])
scope_dep = Depends(get_scope)
prompt_dep = Depends(get_prompt_ref)
service_dep = Depends(get_prompt_service)


@router.get("", response_model=PromptListResponse)
def list_prompts(scope: ProjectScope = scope_dep, service: PromptService = service_dep):
    """Liste les prompts actifs du projet, les plus récemment modifiés d'abord."""
    return {"prompts": service.list_prompts(scope)}


@router.post("", response_model=PromptResponse, status_code=HTTP_CREATED)
def create_prompt(
    payload: CreatePromptRequest,
    scope: ProjectScope = scope_dep,
    service: PromptService = service_dep,
):
    """
    Crée un prompt: tête en version 1, entrée 1 du registre, routeur vers 1.

    Retour: 201 avec le prompt créé; 409 si le slug est déjà pris dans le projet.
    """
    prompt = service.create_prompt(scope, CreatePromptInput(**payload.model_dump()))
    return {"prompt": prompt}


@router.get("/{prompt_id}", response_model=PromptDetailResponse)
def get_prompt(ref: EntityRef = prompt_dep, service: PromptService = service_dep):
    """Retourne la tête et l'entrée du registre à `latest_version`."""
    return {"prompt": service.get_prompt(ref)}


@router.put("/{prompt_id}", response_model=PromptDetailResponse)
def update_prompt(
    payload: UpdatePromptRequest,
    ref: EntityRef = prompt_dep,
    service: PromptService = service_dep,
):
    """
    Met à jour un prompt: nouvelle version au registre et routeur repointé dessus.

    Les champs omis conservent leur valeur courante.
    """
    return {"prompt": service.update_prompt(ref, UpdatePromptInput(**payload.model_dump()))}


@router.delete("/{prompt_id}", response_model=SuccessResponse)
def deactivate_prompt(ref: EntityRef = prompt_dep, service: PromptService = service_dep):
    """Désactive le prompt (le registre et le routeur sont conservés)."""
    service.deactivate_prompt(ref)
    return SuccessResponse()


@router.get("/{prompt_id}/versions", response_model=VersionListResponse)
def list_versions(ref: EntityRef = prompt_dep, service: PromptService = service_dep):
    return {"versions": service.list_versions(ref)}


@router.get("/{prompt_id}/versions/{version}", response_model=VersionResponse)
def get_version(
    version: str, ref: EntityRef = prompt_dep, service: PromptService = service_dep
):
    """Retourne une entrée du registre par numéro de version."""
    number = parse_positive_id(version, "version")
    return {"version": service.get_version(ref.version(number))}


@router.get("/{prompt_id}/router", response_model=RouterVersionResponse)
def get_router(ref: EntityRef = prompt_dep, service: PromptService = service_dep):
    """Numéro de la version active (null si aucun routeur)."""
    return {"router_version": service.get_router_version(ref)}


@router.put("/{prompt_id}/router", response_model=RouterSetResponse)
def set_router(
    payload: SetRouterRequest,
    ref: EntityRef = prompt_dep,
    service: PromptService = service_dep,
):
    """
    Repointe le routeur sur une version existante (rollback/rollout).

    La tête et son `latest_version` ne changent pas. 404 si la version n'existe pas.
    """
    service.set_active_version(ref, payload.version)
    return RouterSetResponse(router_version=payload.version)


@router.post("/{prompt_id}/copy", response_model=PromptResponse, status_code=HTTP_CREATED)
def copy_prompt(ref: EntityRef = prompt_dep, service: PromptService = service_dep):
    """Copie le contenu courant sous un nom/slug unique (`X Copy` / `x-copy`, puis `-copy-N`)."""
    return {"prompt": service.copy_prompt(ref)}


@router.patch("/{prompt_id}/rename", response_model=PromptResponse)
def rename_prompt(
    payload: RenamePromptRequest,
    ref: EntityRef = prompt_dep,
    service: PromptService = service_dep,
):
    """Renomme la tête (nom et slug dérivé); aucune version n'est créée."""
    return {"prompt": service.rename_prompt(ref, payload.name.strip())}
