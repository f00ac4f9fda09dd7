"""DB utilities for SQLAlchemy sessions/engine.

Uses `DATABASE_URL` env var or falls back to `sqlite+pysqlite:///:memory:` for tests.

Every service operation runs inside one `session_scope`: the unit of atomicity for a
read-modify-append sequence on a single aggregate.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ...domain.errors import ConcurrentUpdateError

# Attente maximale (secondes) du verrou d'écriture SQLite avant abandon
DEFAULT_SQLITE_BUSY_TIMEOUT_S = 30.0


def _install_sqlite_transactions(engine: Engine) -> None:
    """Laisse SQLAlchemy piloter BEGIN/SAVEPOINT à la place du driver pysqlite.

    Sans cela pysqlite n'ouvre la transaction qu'au premier DML et les SAVEPOINT
    (utilisés par la boucle de nommage des copies) ne sont pas fiables.

    SQLite ignore `SELECT ... FOR UPDATE`: chaque transaction prend donc le verrou
    d'écriture dès son ouverture (`BEGIN IMMEDIATE`), ce qui sérialise les écrivains et
    évite l'échec d'une montée de verrou lecture -> écriture.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _is_lock_timeout(err: OperationalError) -> bool:
    message = str(err.orig).lower()
    return "database is locked" in message or "database table is locked" in message


def get_engine(
    url: str | None = None,
    echo: bool = False,
    busy_timeout_s: float = DEFAULT_SQLITE_BUSY_TIMEOUT_S,
) -> Engine:
    """Crée un moteur SQLAlchemy à partir de l'URL de base de données."""
    db_url = url or os.getenv("DATABASE_URL") or "sqlite+pysqlite:///:memory:"
    kwargs: dict = {}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": busy_timeout_s}
        if ":memory:" in db_url or db_url in {"sqlite://", "sqlite+pysqlite://"}:
            # une seule connexion partagée, sinon chaque connexion voit une base vide
            kwargs["poolclass"] = StaticPool
    engine = create_engine(db_url, future=True, echo=echo, **kwargs)
    if engine.dialect.name == "sqlite":
        _install_sqlite_transactions(engine)
    return engine


def get_session_factory(engine: Engine) -> sessionmaker:
    """Crée une factory de sessions SQLAlchemy."""
    return sessionmaker(bind=engine, class_=Session, expire_on_commit=False)


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Contexte de session SQLAlchemy avec gestion automatique des transactions.

    Commit si le bloc se termine normalement, rollback complet sinon: aucune application
    partielle d'une séquence multi-étapes n'est jamais rendue durable. Un verrou
    d'écriture non obtenu dans le délai imparti devient `ConcurrentUpdateError`.
    """
    SessionLocal = get_session_factory(engine)
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except OperationalError as err:
        session.rollback()
        if _is_lock_timeout(err):
            raise ConcurrentUpdateError() from err
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
