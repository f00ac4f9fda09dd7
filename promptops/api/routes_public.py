"""
API publique v1 destinée aux couches d'exécution.

Lecture seule de la version active (désignée par le routeur) ou de la dernière version d'un
prompt, adressé par identifiant numérique ou par slug. Le `body` est renvoyé décodé.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends

from promptops.api.deps import get_prompt_service, get_scope
from promptops.api.schemas import PublicVersionResponse
from promptops.domain.entities import Prompt, PromptVersion
from promptops.domain.errors import (
    ConsistencyViolationError,
    ValidationError,
    VersionNotFoundError,
)
from promptops.domain.tenancy import ProjectScope, parse_positive_id
from promptops.services.prompt_service import PromptService

router = APIRouter(prefix="/v1/projects/{project_id}/prompts", tags=["v1"])
scope_dep = Depends(get_scope)
service_dep = Depends(get_prompt_service)


def _resolve_prompt(service: PromptService, scope: ProjectScope, slug_or_id: str) -> Prompt:
    """Résout un prompt actif par id numérique ou par slug."""
    if slug_or_id.isdigit():
        prompt = service.get_prompt(scope.entity(parse_positive_id(slug_or_id, "promptId")))
    else:
        prompt = service.get_prompt_by_slug(scope, slug_or_id)
    if not prompt.is_active:
        raise ValidationError("Prompt is not active")
    return prompt


def _decode_body(entry: PromptVersion) -> Any:
    try:
        return json.loads(entry.body)
    except ValueError as err:
        raise ConsistencyViolationError("Invalid prompt body format") from err


@router.get("/{prompt_slug_or_id}/active", response_model=PublicVersionResponse)
def get_active_version(
    prompt_slug_or_id: str,
    scope: ProjectScope = scope_dep,
    service: PromptService = service_dep,
):
    """Version actuellement servie (routeur); 404 si aucun routeur n'existe."""
    prompt = _resolve_prompt(service, scope, prompt_slug_or_id)
    entry = service.get_active_version(scope.entity(prompt.id))
    if entry is None:
        raise VersionNotFoundError()
    return PublicVersionResponse.from_entry(entry, _decode_body(entry))


@router.get("/{prompt_slug_or_id}/latest", response_model=PublicVersionResponse)
def get_latest_version(
    prompt_slug_or_id: str,
    scope: ProjectScope = scope_dep,
    service: PromptService = service_dep,
):
    """Dernière version du registre, indépendamment du routeur."""
    prompt = _resolve_prompt(service, scope, prompt_slug_or_id)
    entry = service.get_latest_version(scope.entity(prompt.id))
    return PublicVersionResponse.from_entry(entry, _decode_body(entry))
