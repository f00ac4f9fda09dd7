"""Repositories des datasets et de leurs enregistrements.

Le compteur `count_of_records` n'est jamais recalculé: il est ajusté en base par incréments
signés (`count = count + :delta`) dans la même transaction que l'écriture des enregistrements.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ...domain.tenancy import EntityRef, ProjectScope
from .models import DataSetORM, DataSetRecordORM, utcnow


class DataSetRepo:
    """Accès à la table `datasets` (agrégats vivants uniquement en lecture)."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def list_live(self, scope: ProjectScope) -> list[DataSetORM]:
        stmt = (
            select(DataSetORM)
            .where(scope.where(DataSetORM), DataSetORM.is_deleted.is_(False))
            .order_by(DataSetORM.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def find_live(self, ref: EntityRef, for_update: bool = False) -> DataSetORM | None:
        stmt = (
            select(DataSetORM)
            .where(ref.where(DataSetORM), DataSetORM.is_deleted.is_(False))
            .limit(1)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.execute(stmt).scalars().first()

    def find_live_by_slug(self, scope: ProjectScope, slug: str) -> DataSetORM | None:
        stmt = (
            select(DataSetORM)
            .where(
                scope.where(DataSetORM),
                DataSetORM.slug == slug,
                DataSetORM.is_deleted.is_(False),
            )
            .limit(1)
        )
        return self._session.execute(stmt).scalars().first()

    def create(
        self, scope: ProjectScope, name: str, slug: str, type_map: dict[str, Any]
    ) -> DataSetORM:
        row = DataSetORM(
            tenant_id=scope.tenant_id,
            project_id=scope.project_id,
            name=name,
            slug=slug,
            is_deleted=False,
            count_of_records=0,
            type_map=type_map,
        )
        self._session.add(row)
        self._session.flush()
        return row

    def increment_record_count(self, ref: EntityRef, amount: int) -> None:
        """Ajuste le compteur de `amount` (signé); no-op si `amount == 0`."""
        if amount == 0:
            return
        stmt = (
            update(DataSetORM)
            .where(ref.where(DataSetORM))
            .values(
                count_of_records=DataSetORM.count_of_records + amount,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        self._session.execute(stmt)

    def update_type_map(self, ref: EntityRef, type_map: dict[str, Any]) -> None:
        stmt = (
            update(DataSetORM)
            .where(ref.where(DataSetORM))
            .values(type_map=type_map, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        self._session.execute(stmt)

    def soft_delete(self, ref: EntityRef) -> int:
        """Suppression logique; retourne le nombre de lignes passées à supprimées (0 ou 1)."""
        stmt = (
            update(DataSetORM)
            .where(ref.where(DataSetORM), DataSetORM.is_deleted.is_(False))
            .values(is_deleted=True, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount


class DataSetRecordRepo:
    """Accès à la table `dataset_records`."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def _live_predicate(self, dataset: EntityRef):
        return (
            dataset.scope.where(DataSetRecordORM),
            DataSetRecordORM.data_set_id == dataset.id,
            DataSetRecordORM.is_deleted.is_(False),
        )

    def create_many(
        self, dataset: EntityRef, payloads: Sequence[dict[str, Any]]
    ) -> list[DataSetRecordORM]:
        if not payloads:
            return []
        rows = [
            DataSetRecordORM(
                tenant_id=dataset.tenant_id,
                project_id=dataset.project_id,
                data_set_id=dataset.id,
                variables=variables,
                is_deleted=False,
            )
            for variables in payloads
        ]
        self._session.add_all(rows)
        self._session.flush()
        return rows

    def list_live(self, dataset: EntityRef) -> list[DataSetRecordORM]:
        stmt = (
            select(DataSetRecordORM)
            .where(*self._live_predicate(dataset))
            .order_by(DataSetRecordORM.created_at.desc(), DataSetRecordORM.id.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_live_window(
        self, dataset: EntityRef, offset: int, limit: int
    ) -> list[DataSetRecordORM]:
        stmt = (
            select(DataSetRecordORM)
            .where(*self._live_predicate(dataset))
            .order_by(DataSetRecordORM.created_at.desc(), DataSetRecordORM.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self._session.execute(stmt).scalars().all())

    def soft_delete_many(self, dataset: EntityRef, record_ids: Sequence[int]) -> int:
        """Passe à supprimés les ids vivants du dataset; ignore les autres silencieusement.

        Retourne le nombre de lignes effectivement transitionnées.
        """
        if not record_ids:
            return 0
        stmt = (
            update(DataSetRecordORM)
            .where(
                *self._live_predicate(dataset),
                DataSetRecordORM.id.in_(list(set(record_ids))),
            )
            .values(is_deleted=True, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount
