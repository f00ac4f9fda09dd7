"""
Service des datasets: stockage d'enregistrements, compteur vivant et schéma inféré.

L'écriture d'un enregistrement applique trois effets dans une même transaction, agrégat
verrouillé: insertion, incrément du compteur, repli de la TypeMap. Le compteur n'est jamais
recalculé et sert directement de `total` à la pagination.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

import structlog
from sqlalchemy.engine import Engine

from promptops.app.metrics import DATASET_RECORDS_DELETED, DATASET_RECORDS_WRITTEN
from promptops.domain.entities import DataSet, DataSetRecord, PaginatedRecords
from promptops.domain.errors import DatasetNotFound
from promptops.domain.schema_inference import (
    fold_payloads,
    parse_type_map,
    stored_type_map,
)
from promptops.domain.slugs import dedupe_candidates, generate_slug
from promptops.domain.tenancy import EntityRef, ProjectScope
from promptops.infra.repo.dataset_repo import DataSetRecordRepo, DataSetRepo
from promptops.infra.repo.db import session_scope

DEFAULT_DATASET_SLUG = "dataset"


class DataSetService:
    """Service métier des datasets et de leurs enregistrements."""

    def __init__(self, engine: Engine) -> None:
        """Initialise le service avec le moteur SQLAlchemy."""
        self._engine = engine
        self._log = structlog.get_logger(__name__)

    def _bind(self, scope: ProjectScope):
        return self._log.bind(tenant_id=scope.tenant_id, project_id=scope.project_id)

    # -- agrégats ----------------------------------------------------------

    def create_dataset(
        self, scope: ProjectScope, name: str, schema: Any = None
    ) -> DataSet:
        """Crée un dataset vide; slug dédoublonné parmi les datasets vivants (`x`, `x-2`...)."""
        base_slug = generate_slug(name) or DEFAULT_DATASET_SLUG
        with session_scope(self._engine) as session:
            repo = DataSetRepo(session)
            slug = next(
                s
                for s in dedupe_candidates(base_slug)
                if repo.find_live_by_slug(scope, s) is None
            )
            row = repo.create(scope, name, slug, parse_type_map(schema))
            dataset = DataSet.model_validate(row)
        self._bind(scope).info("dataset_created", dataset_id=dataset.id, slug=slug)
        return dataset

    def list_datasets(self, scope: ProjectScope) -> list[DataSet]:
        with session_scope(self._engine) as session:
            return [DataSet.model_validate(r) for r in DataSetRepo(session).list_live(scope)]

    def get_dataset(self, ref: EntityRef) -> DataSet:
        with session_scope(self._engine) as session:
            row = DataSetRepo(session).find_live(ref)
            if row is None:
                raise DatasetNotFound()
            return DataSet.model_validate(row)

    def delete_dataset(self, ref: EntityRef) -> None:
        """Suppression logique idempotente: absent ou déjà supprimé -> no-op silencieux."""
        with session_scope(self._engine) as session:
            changed = DataSetRepo(session).soft_delete(ref)
        if changed:
            self._bind(ref.scope).info("dataset_deleted", dataset_id=ref.id)

    # -- enregistrements ---------------------------------------------------

    def create_record(self, ref: EntityRef, variables: dict[str, Any]) -> DataSetRecord:
        """Insère un enregistrement, incrémente le compteur et replie le schéma."""
        return self.add_records(ref, [variables])[0]

    def add_records(
        self, ref: EntityRef, payloads: Sequence[dict[str, Any]]
    ) -> list[DataSetRecord]:
        """Forme en lot de `create_record`: une transaction, compteur += len(payloads).

        Raises:
            DatasetNotFound: aucun dataset vivant sous ce scope.
        """
        with session_scope(self._engine) as session:
            datasets = DataSetRepo(session)
            dataset = datasets.find_live(ref, for_update=True)
            if dataset is None:
                raise DatasetNotFound()
            if not payloads:
                return []

            type_map = fold_payloads(stored_type_map(dataset.type_map), payloads)
            rows = DataSetRecordRepo(session).create_many(ref, payloads)
            datasets.increment_record_count(ref, len(rows))
            datasets.update_type_map(ref, type_map)
            records = [DataSetRecord.model_validate(r) for r in rows]

        DATASET_RECORDS_WRITTEN.inc(len(records))
        self._bind(ref.scope).info(
            "dataset_record_created", dataset_id=ref.id, count=len(records)
        )
        return records

    def list_records(self, ref: EntityRef) -> list[DataSetRecord]:
        """Tous les enregistrements vivants, les plus récents d'abord."""
        with session_scope(self._engine) as session:
            if DataSetRepo(session).find_live(ref) is None:
                raise DatasetNotFound()
            rows = DataSetRecordRepo(session).list_live(ref)
            return [DataSetRecord.model_validate(r) for r in rows]

    def list_records_paginated(
        self, ref: EntityRef, page: int, page_size: int
    ) -> PaginatedRecords:
        """Fenêtre `(page-1)*page_size` / `page_size`; `total` lu sur le compteur de l'agrégat.

        Les bornes de `page`/`page_size` sont validées en amont (résolveur de pagination).
        """
        with session_scope(self._engine) as session:
            dataset = DataSetRepo(session).find_live(ref)
            if dataset is None:
                raise DatasetNotFound()
            total = dataset.count_of_records
            rows = DataSetRecordRepo(session).list_live_window(
                ref, offset=(page - 1) * page_size, limit=page_size
            )
            records = [DataSetRecord.model_validate(r) for r in rows]
        return PaginatedRecords(
            records=records,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )

    def delete_records(self, ref: EntityRef, record_ids: Sequence[int]) -> dict[str, int]:
        """Supprime logiquement les ids vivants du dataset; décrémente du nombre réel.

        Les ids déjà supprimés ou étrangers sont ignorés sans erreur.
        """
        if not record_ids:
            return {"deleted": 0}
        with session_scope(self._engine) as session:
            datasets = DataSetRepo(session)
            if datasets.find_live(ref, for_update=True) is None:
                raise DatasetNotFound()
            deleted = DataSetRecordRepo(session).soft_delete_many(ref, record_ids)
            datasets.increment_record_count(ref, -deleted)

        if deleted:
            DATASET_RECORDS_DELETED.inc(deleted)
        self._bind(ref.scope).info(
            "dataset_records_deleted",
            dataset_id=ref.id,
            requested=len(record_ids),
            deleted=deleted,
        )
        return {"deleted": deleted}
