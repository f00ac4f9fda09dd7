# ============================================================
# Module : promptops/infra/repo/prompt_repo.py
# Objet  : Accès SQL pour les prompts, leur registre de versions et leur routeur.
# ============================================================
"""Repository des prompts.

Toutes les requêtes sont construites à partir d'un `ProjectScope`/`EntityRef`: une ligne d'un
autre tenant ou projet n'est jamais lue ni modifiée. Le registre de versions n'expose aucune
opération de mise à jour ou de suppression.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ...domain.tenancy import EntityRef, ProjectScope, PromptVersionRef
from .models import PromptORM, PromptRouterORM, PromptVersionORM, utcnow


class PromptRepo:
    """Accès aux tables `prompts`, `prompt_versions` et `prompt_routers`."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    # -- tête -------------------------------------------------------------

    def list_prompts(self, scope: ProjectScope, active_only: bool = True) -> list[PromptORM]:
        stmt = select(PromptORM).where(scope.where(PromptORM))
        if active_only:
            stmt = stmt.where(PromptORM.is_active.is_(True))
        stmt = stmt.order_by(PromptORM.updated_at.desc(), PromptORM.id.desc())
        return list(self._session.execute(stmt).scalars().all())

    def find_by_id(self, ref: EntityRef, for_update: bool = False) -> PromptORM | None:
        """Charge la tête; `for_update` pose un verrou de ligne (SELECT ... FOR UPDATE)."""
        stmt = select(PromptORM).where(ref.where(PromptORM)).limit(1)
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.execute(stmt).scalars().first()

    def find_by_slug(self, scope: ProjectScope, slug: str) -> PromptORM | None:
        stmt = (
            select(PromptORM)
            .where(scope.where(PromptORM), PromptORM.slug == slug)
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def create_prompt(
        self,
        scope: ProjectScope,
        *,
        name: str,
        slug: str,
        provider: str,
        model: str,
        body: str,
    ) -> PromptORM:
        """Insère une tête à `latest_version = 1`. Lève IntegrityError si le slug est pris."""
        row = PromptORM(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            name=name,
            slug=slug,
            provider=provider,
            model=model,
            body=body,
            latest_version=1,
            is_active=True,
        )
        self._session.add(row)
        self._session.flush()
        return row

    def advance_latest_version(self, ref: EntityRef, expected: int, **fields) -> bool:
        """Compare-and-swap: passe `latest_version` de `expected` à `expected + 1`.

        Retourne False si aucune ligne ne correspond (tête absente ou déjà avancée).
        """
        stmt = (
            update(PromptORM)
            .where(ref.where(PromptORM), PromptORM.latest_version == expected)
            .values(latest_version=expected + 1, updated_at=utcnow(), **fields)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        return result.rowcount == 1

    def rename(self, ref: EntityRef, name: str, slug: str) -> None:
        stmt = (
            update(PromptORM)
            .where(ref.where(PromptORM))
            .values(name=name, slug=slug, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self._session.execute(stmt)
        self._session.flush()

    def deactivate(self, ref: EntityRef) -> None:
        stmt = (
            update(PromptORM)
            .where(ref.where(PromptORM))
            .values(is_active=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self._session.execute(stmt)

    # -- registre de versions ---------------------------------------------

    def create_version(
        self,
        ref: EntityRef,
        version: int,
        *,
        name: str,
        slug: str,
        provider: str,
        model: str,
        body: str,
    ) -> PromptVersionORM:
        """Ajoute une entrée immuable. Contrainte d'unicité: (tenant, projet, prompt, version)."""
        row = PromptVersionORM(
            prompt_id=ref.id,
            tenant_id=ref.tenant_id,
            project_id=ref.project_id,
            version=version,
            name=name,
            slug=slug,
            provider=provider,
            model=model,
            body=body,
        )
        self._session.add(row)
        self._session.flush()
        return row

    def find_version(self, vref: PromptVersionRef) -> PromptVersionORM | None:
        stmt = select(PromptVersionORM).where(vref.where(PromptVersionORM)).limit(1)
        return self._session.execute(stmt).scalars().first()

    def find_version_by_id(
        self, scope: ProjectScope, version_id: int
    ) -> PromptVersionORM | None:
        stmt = (
            select(PromptVersionORM)
            .where(scope.where(PromptVersionORM), PromptVersionORM.id == version_id)
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def list_versions(self, ref: EntityRef) -> list[PromptVersionORM]:
        """Entrées du registre, la plus récente d'abord."""
        stmt = (
            select(PromptVersionORM)
            .where(
                ref.scope.where(PromptVersionORM),
                PromptVersionORM.prompt_id == ref.id,
            )
            .order_by(PromptVersionORM.version.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    # -- routeur -----------------------------------------------------------

    def find_router(self, ref: EntityRef) -> PromptRouterORM | None:
        stmt = (
            select(PromptRouterORM)
            .where(
                ref.scope.where(PromptRouterORM),
                PromptRouterORM.prompt_id == ref.id,
            )
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def point_router(self, ref: EntityRef, version: int) -> PromptRouterORM:
        """Crée le routeur s'il est absent, sinon réécrit sa version en place."""
        router = self.find_router(ref)
        if router is None:
            router = PromptRouterORM(
                prompt_id=ref.id,
                tenant_id=ref.tenant_id,
                project_id=ref.project_id,
                version=version,
            )
            self._session.add(router)
        else:
            router.version = version
            router.updated_at = utcnow()
        self._session.flush()
        return router
