# ============================================================
# Tests : tests/test_concurrency.py
# Objet  : Écrivains concurrents sur une base SQLite fichier (threads).
# ============================================================
"""Tests d'écritures concurrentes: versions sans trou, compteur exact, verrou typé."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select

from promptops.domain.entities import CreatePromptInput, UpdatePromptInput
from promptops.domain.errors import ConcurrentUpdateError
from promptops.domain.tenancy import ProjectScope
from promptops.infra.repo.db import get_engine, session_scope
from promptops.infra.repo.models import Base, DataSetRecordORM, PromptVersionORM
from promptops.services.dataset_service import DataSetService
from promptops.services.prompt_service import PromptService

WORKERS = 4
CALLS_PER_WORKER = 10
DELETES_PER_WORKER = 3
SCOPE = ProjectScope(1, 10, "user-1")


@pytest.fixture
def file_engine(tmp_path):
    """Moteur SQLite sur fichier: une connexion par thread, verrous réels."""
    eng = get_engine(f"sqlite+pysqlite:///{tmp_path / 'promptops.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


def _create_prompt(service: PromptService):
    return service.create_prompt(
        SCOPE,
        CreatePromptInput(name="Shared", slug="shared", provider="openai", model="gpt-4o"),
    )


def test_interleaved_updates_keep_versions_gap_free(file_engine) -> None:
    service = PromptService(file_engine)
    ref = SCOPE.entity(_create_prompt(service).id)

    def worker(n: int) -> list[int]:
        return [
            service.update_prompt(ref, UpdatePromptInput(body=f"w{n}-{i}")).latest_version
            for i in range(CALLS_PER_WORKER)
        ]

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        results = list(pool.map(worker, range(WORKERS)))

    expected_latest = 1 + WORKERS * CALLS_PER_WORKER
    seen = sorted(v for versions in results for v in versions)
    assert seen == list(range(2, expected_latest + 1))
    for versions in results:
        assert versions == sorted(versions)

    with session_scope(file_engine) as session:
        ledger = session.execute(
            select(PromptVersionORM.version)
            .where(PromptVersionORM.prompt_id == ref.id)
            .order_by(PromptVersionORM.version)
        ).scalars().all()
    assert ledger == list(range(1, expected_latest + 1))
    assert service.get_prompt(ref).latest_version == expected_latest
    assert service.get_router_version(ref) == expected_latest


def test_interleaved_record_writes_keep_counter_exact(file_engine) -> None:
    service = DataSetService(file_engine)
    ref = SCOPE.entity(service.create_dataset(SCOPE, "Shared").id)

    def worker(n: int) -> None:
        ids = [service.create_record(ref, {"w": n, "i": i}).id for i in range(CALLS_PER_WORKER)]
        service.delete_records(ref, ids[:DELETES_PER_WORKER])

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        list(pool.map(worker, range(WORKERS)))

    with session_scope(file_engine) as session:
        live = session.execute(
            select(func.count())
            .select_from(DataSetRecordORM)
            .where(
                DataSetRecordORM.data_set_id == ref.id,
                DataSetRecordORM.is_deleted.is_(False),
            )
        ).scalar_one()
    dataset = service.get_dataset(ref)
    assert live == WORKERS * (CALLS_PER_WORKER - DELETES_PER_WORKER)
    assert dataset.count_of_records == live
    assert dataset.type_map == {"w": {"type": "number"}, "i": {"type": "number"}}


def test_write_lock_timeout_is_a_concurrent_update(tmp_path) -> None:
    """Un verrou d'écriture tenu ailleurs au-delà du délai -> ConcurrentUpdateError."""
    engine = get_engine(f"sqlite+pysqlite:///{tmp_path / 'locked.db'}", busy_timeout_s=0.05)
    Base.metadata.create_all(engine)
    service = PromptService(engine)
    ref = SCOPE.entity(_create_prompt(service).id)

    try:
        with engine.connect() as holder:
            holder.begin()
            try:
                with pytest.raises(ConcurrentUpdateError):
                    service.update_prompt(ref, UpdatePromptInput(body="blocked"))
            finally:
                holder.rollback()

        prompt = service.get_prompt(ref)
        assert prompt.latest_version == 1
        assert prompt.body == "{}"
    finally:
        engine.dispose()
