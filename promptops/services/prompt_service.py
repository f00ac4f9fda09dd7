"""
Service des prompts: registre de versions en ajout seul et routeur de version active.

Chaque prompt possède une tête (état courant, `latest_version`), un registre d'instantanés
immuables numérotés 1..latest_version sans trou, et au plus un routeur désignant la version
servie. Les séquences lecture -> ajout -> repointage s'exécutent dans une seule transaction,
tête verrouillée (SELECT ... FOR UPDATE) et avancée de version par compare-and-swap.
"""

from __future__ import annotations

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from promptops.app.metrics import (
    CONSISTENCY_VIOLATIONS,
    PROMPT_ROUTER_UPDATES,
    PROMPT_VERSIONS_APPENDED,
)
from promptops.domain.entities import (
    PROMPT_CONTENT_FIELDS,
    CreatePromptInput,
    Prompt,
    PromptVersion,
    PromptWithVersion,
    UpdatePromptInput,
)
from promptops.domain.errors import (
    ConcurrentUpdateError,
    ConsistencyViolationError,
    PromptNotFound,
    SlugConflictError,
    ValidationError,
    VersionNotFoundError,
)
from promptops.domain.slugs import copy_candidates, generate_slug
from promptops.domain.tenancy import EntityRef, ProjectScope, PromptVersionRef
from promptops.infra.repo.db import session_scope
from promptops.infra.repo.prompt_repo import PromptRepo

DEFAULT_COPY_SLUG_MAX_ATTEMPTS = 5


class PromptService:
    """Service métier des prompts.

    Responsabilités:
    - Créer/mettre à jour/copier/renommer les têtes de prompts.
    - Maintenir le registre de versions (jamais modifié ni supprimé).
    - Maintenir le routeur de version active (rollback/rollout).
    """

    def __init__(
        self, engine: Engine, copy_slug_max_attempts: int = DEFAULT_COPY_SLUG_MAX_ATTEMPTS
    ) -> None:
        """Initialise le service avec le moteur SQLAlchemy."""
        self._engine = engine
        self._copy_slug_max_attempts = max(1, copy_slug_max_attempts)
        self._log = structlog.get_logger(__name__)

    def _bind(self, scope: ProjectScope):
        return self._log.bind(tenant_id=scope.tenant_id, project_id=scope.project_id)

    @staticmethod
    def _seed_version_and_router(repo: PromptRepo, head) -> None:
        ref = EntityRef(head.id, ProjectScope(head.tenant_id, head.project_id))
        repo.create_version(
            ref,
            1,
            name=head.name,
            slug=head.slug,
            provider=head.provider,
            model=head.model,
            body=head.body,
        )
        repo.point_router(ref, 1)

    # -- écriture -----------------------------------------------------------

    def create_prompt(self, scope: ProjectScope, data: CreatePromptInput) -> Prompt:
        """Crée la tête (version 1), l'entrée 1 du registre et le routeur vers 1."""
        with session_scope(self._engine) as session:
            repo = PromptRepo(session)
            try:
                head = repo.create_prompt(
                    scope,
                    name=data.name,
                    slug=data.slug,
                    provider=data.provider,
                    model=data.model,
                    body=data.body,
                )
            except IntegrityError as err:
                raise SlugConflictError() from err
            self._seed_version_and_router(repo, head)
            prompt = Prompt.model_validate(head)
        PROMPT_VERSIONS_APPENDED.labels("create").inc()
        PROMPT_ROUTER_UPDATES.labels("create").inc()
        self._bind(scope).info("prompt_created", prompt_id=prompt.id, slug=prompt.slug)
        return prompt

    def update_prompt(self, ref: EntityRef, changes: UpdatePromptInput) -> PromptWithVersion:
        """Fusionne `changes` sur la tête, ajoute la version suivante et y repointe le routeur.

        Retourne la tête mise à jour et l'entrée ajoutée, lues dans la même transaction.

        Raises:
            PromptNotFound: aucune tête sous ce scope.
            ConcurrentUpdateError: la tête a avancé entre la lecture et l'écriture.
        """
        with session_scope(self._engine) as session:
            repo = PromptRepo(session)
            head = repo.find_by_id(ref, for_update=True)
            if head is None:
                raise PromptNotFound()

            expected = head.latest_version
            new_version = expected + 1
            merged = {}
            for field in PROMPT_CONTENT_FIELDS:
                value = getattr(changes, field)
                merged[field] = getattr(head, field) if value is None else value

            if not repo.advance_latest_version(ref, expected, **merged):
                raise ConcurrentUpdateError()
            entry = repo.create_version(ref, new_version, slug=head.slug, **merged)
            repo.point_router(ref, new_version)
            session.refresh(head)
            prompt = PromptWithVersion(
                **Prompt.model_validate(head).model_dump(),
                current_version=PromptVersion.model_validate(entry),
            )

        PROMPT_VERSIONS_APPENDED.labels("update").inc()
        PROMPT_ROUTER_UPDATES.labels("update").inc()
        self._bind(ref.scope).info(
            "prompt_version_appended", prompt_id=ref.id, version=new_version
        )
        return prompt

    def set_active_version(self, ref: EntityRef, version: int) -> None:
        """Repointe le routeur sur une version existante, sans toucher à la tête.

        Raises:
            PromptNotFound: aucune tête sous ce scope.
            VersionNotFoundError: aucune entrée du registre à ce numéro sous ce scope.
        """
        with session_scope(self._engine) as session:
            repo = PromptRepo(session)
            # verrou sur la tête: sérialise avec update_prompt sur le même prompt
            if repo.find_by_id(ref, for_update=True) is None:
                raise PromptNotFound()
            if repo.find_version(ref.version(version)) is None:
                raise VersionNotFoundError()
            repo.point_router(ref, version)
        PROMPT_ROUTER_UPDATES.labels("set_active").inc()
        self._bind(ref.scope).info("prompt_router_set", prompt_id=ref.id, version=version)

    def copy_prompt(self, ref: EntityRef) -> Prompt:
        """Copie le contenu courant dans un nouveau prompt au nom/slug unique.

        Sondage séquentiel `-copy`, `-copy-2`, ...; si l'index unique rejette un slug pris
        entre-temps par une copie concurrente, on passe au candidat suivant.
        """
        with session_scope(self._engine) as session:
            repo = PromptRepo(session)
            source = repo.find_by_id(ref)
            if source is None:
                raise PromptNotFound()

            conflicts = 0
            head = None
            for name, slug in copy_candidates(source.name, source.slug):
                if repo.find_by_slug(ref.scope, slug) is not None:
                    continue
                try:
                    with session.begin_nested():
                        head = repo.create_prompt(
                            ref.scope,
                            name=name,
                            slug=slug,
                            provider=source.provider,
                            model=source.model,
                            body=source.body,
                        )
                except IntegrityError:
                    conflicts += 1
                    if conflicts >= self._copy_slug_max_attempts:
                        raise SlugConflictError() from None
                    continue
                break

            self._seed_version_and_router(repo, head)
            prompt = Prompt.model_validate(head)

        PROMPT_VERSIONS_APPENDED.labels("copy").inc()
        PROMPT_ROUTER_UPDATES.labels("copy").inc()
        self._bind(ref.scope).info(
            "prompt_copied", source_id=ref.id, prompt_id=prompt.id, slug=prompt.slug
        )
        return prompt

    def rename_prompt(self, ref: EntityRef, name: str) -> Prompt:
        """Met à jour nom et slug de la tête uniquement (aucune version, routeur intact)."""
        slug = generate_slug(name)
        if not slug:
            raise ValidationError("Name must contain at least one letter or digit")
        with session_scope(self._engine) as session:
            repo = PromptRepo(session)
            head = repo.find_by_id(ref, for_update=True)
            if head is None:
                raise PromptNotFound()
            holder = repo.find_by_slug(ref.scope, slug)
            if holder is not None and holder.id != ref.id:
                raise SlugConflictError()
            try:
                repo.rename(ref, name, slug)
            except IntegrityError as err:
                raise SlugConflictError() from err
            session.refresh(head)
            prompt = Prompt.model_validate(head)
        self._bind(ref.scope).info("prompt_renamed", prompt_id=ref.id, slug=slug)
        return prompt

    def deactivate_prompt(self, ref: EntityRef) -> None:
        """Désactive la tête (le registre et le routeur restent inchangés)."""
        with session_scope(self._engine) as session:
            repo = PromptRepo(session)
            if repo.find_by_id(ref) is None:
                raise PromptNotFound()
            repo.deactivate(ref)
        self._bind(ref.scope).info("prompt_deactivated", prompt_id=ref.id)

    # -- lecture ------------------------------------------------------------

    def get_active_version(self, ref: EntityRef) -> PromptVersion | None:
        """Entrée désignée par le routeur, ou None si aucun routeur.

        Raises:
            PromptNotFound: aucune tête sous ce scope.
            ConsistencyViolationError: le routeur désigne une version inexistante.
        """
        with session_scope(self._engine) as session:
            repo = PromptRepo(session)
            if repo.find_by_id(ref) is None:
                raise PromptNotFound()
            router = repo.find_router(ref)
            if router is None:
                return None
            entry = repo.find_version(ref.version(router.version))
            if entry is None:
                CONSISTENCY_VIOLATIONS.labels("router_dangling").inc()
                self._bind(ref.scope).error(
                    "prompt_router_dangling", prompt_id=ref.id, version=router.version
                )
                raise ConsistencyViolationError(
                    "Active version router references a missing ledger entry"
                )
            return PromptVersion.model_validate(entry)

    def get_latest_version(self, ref: EntityRef) -> PromptVersion:
        """Entrée du registre à `latest_version`, indépendamment du routeur.

        Raises:
            PromptNotFound: aucune tête sous ce scope.
            ConsistencyViolationError: la tête désigne une version absente du registre.
        """
        with session_scope(self._engine) as session:
            repo = PromptRepo(session)
            head = repo.find_by_id(ref)
            if head is None:
                raise PromptNotFound()
            entry = repo.find_version(ref.version(head.latest_version))
            if entry is None:
                CONSISTENCY_VIOLATIONS.labels("latest_missing").inc()
                self._bind(ref.scope).error(
                    "prompt_latest_missing", prompt_id=ref.id, version=head.latest_version
                )
                raise ConsistencyViolationError(
                    "Latest version references a missing ledger entry"
                )
            return PromptVersion.model_validate(entry)

    def get_router_version(self, ref: EntityRef) -> int | None:
        """Numéro de version actif, ou None si aucun routeur."""
        with session_scope(self._engine) as session:
            router = PromptRepo(session).find_router(ref)
            return router.version if router is not None else None

    def get_prompt(self, ref: EntityRef) -> PromptWithVersion:
        """Tête et entrée du registre à `latest_version`."""
        with session_scope(self._engine) as session:
            repo = PromptRepo(session)
            head = repo.find_by_id(ref)
            if head is None:
                raise PromptNotFound()
            current = repo.find_version(ref.version(head.latest_version))
            return PromptWithVersion(
                **Prompt.model_validate(head).model_dump(),
                current_version=(
                    PromptVersion.model_validate(current) if current is not None else None
                ),
            )

    def get_prompt_by_slug(self, scope: ProjectScope, slug: str) -> Prompt:
        with session_scope(self._engine) as session:
            head = PromptRepo(session).find_by_slug(scope, slug)
            if head is None:
                raise PromptNotFound()
            return Prompt.model_validate(head)

    def list_prompts(self, scope: ProjectScope) -> list[Prompt]:
        """Prompts actifs, les plus récemment modifiés d'abord."""
        with session_scope(self._engine) as session:
            rows = PromptRepo(session).list_prompts(scope, active_only=True)
            return [Prompt.model_validate(r) for r in rows]

    def list_versions(self, ref: EntityRef) -> list[PromptVersion]:
        with session_scope(self._engine) as session:
            rows = PromptRepo(session).list_versions(ref)
            return [PromptVersion.model_validate(r) for r in rows]

    def get_version(self, vref: PromptVersionRef) -> PromptVersion:
        with session_scope(self._engine) as session:
            entry = PromptRepo(session).find_version(vref)
            if entry is None:
                raise VersionNotFoundError()
            return PromptVersion.model_validate(entry)

    def get_version_by_id(self, scope: ProjectScope, version_id: int) -> PromptVersion:
        with session_scope(self._engine) as session:
            entry = PromptRepo(session).find_version_by_id(scope, version_id)
            if entry is None:
                raise VersionNotFoundError()
            return PromptVersion.model_validate(entry)
