"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Récupérer le conteneur (services, settings) attaché à l'application, ce qui permet aux
  tests d'injecter leur propre moteur via `create_app(Container(engine=...))`.
- Résoudre le scope de tenancy d'une requête: tenant et utilisateur lus dans le jeton
  bearer, projet lu dans le chemin.
- Valider les paramètres de pagination contre les bornes configurées.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, Query, Request

from promptops.api.errors import unauthorized
from promptops.core.container import Container
from promptops.domain.auth import decode_token
from promptops.domain.errors import ValidationError
from promptops.domain.tenancy import MAX_ID, EntityRef, ProjectScope, parse_positive_id
from promptops.services.dataset_service import DataSetService
from promptops.services.prompt_service import PromptService


def get_container(request: Request) -> Container:
    """Conteneur de l'application courante."""
    return request.app.state.container


def get_prompt_service(container: Container = Depends(get_container)) -> PromptService:
    return container.prompt_service


def get_dataset_service(container: Container = Depends(get_container)) -> DataSetService:
    return container.dataset_service


def get_scope(
    project_id: str,
    authorization: str = Header(None),
    container: Container = Depends(get_container),
) -> ProjectScope:
    """Construit le `ProjectScope` à partir du jeton et du `project_id` de chemin.

    Raises:
        HTTPException 401: jeton absent, mal formé, expiré ou sans `tenant_id` valide.
        ValidationError: `project_id` non entier ou <= 0.
    """
    if not authorization or not authorization.lower().startswith("bearer "):
        raise unauthorized("missing_token")
    token = authorization.split(" ", 1)[1]
    settings = container.settings
    data = decode_token(token, settings.JWT_SECRET, settings.JWT_ALG)
    if data is None:
        raise unauthorized("invalid_token")
    return ProjectScope(
        tenant_id=data.tenant_id,
        project_id=parse_positive_id(project_id, "projectId"),
        user_id=data.sub,
    )


def get_prompt_ref(prompt_id: str, scope: ProjectScope = Depends(get_scope)) -> EntityRef:
    return scope.entity(parse_positive_id(prompt_id, "promptId"))


def get_dataset_ref(dataset_id: str, scope: ProjectScope = Depends(get_scope)) -> EntityRef:
    return scope.entity(parse_positive_id(dataset_id, "datasetId"))


@dataclass(frozen=True)
class Pagination:
    """Paramètres de pagination validés (`page` >= 1, `size` dans les bornes)."""

    page: int
    size: int


def _parse_int(raw: str | None, default: int) -> int | None:
    if raw is None or raw == "":
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return None


def get_pagination(
    page: str | None = Query(None),
    page_size: str | None = Query(None),
    container: Container = Depends(get_container),
) -> Pagination:
    """Lit `page` / `page_size` en query string et applique les bornes des settings."""
    settings = container.settings
    parsed_page = _parse_int(page, 1)
    if parsed_page is None or parsed_page < 1:
        raise ValidationError("Invalid page number")

    lo, hi = settings.PAGINATION_MIN_PAGE_SIZE, settings.PAGINATION_MAX_PAGE_SIZE
    size = _parse_int(page_size, settings.PAGINATION_DEFAULT_PAGE_SIZE)
    if size is None or size < lo or size > hi:
        raise ValidationError(f"Invalid page size (must be between {lo} and {hi})")
    if (parsed_page - 1) * size > MAX_ID:
        raise ValidationError("Invalid page number")
    return Pagination(page=parsed_page, size=size)
