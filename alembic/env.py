"""
Environnement Alembic des migrations prompts/datasets.

L'URL de base est lue dans les settings applicatifs (`DATABASE_URL`), avec repli sur un
fichier SQLite local. Les métadonnées cibles sont celles des modèles `promptops`.
"""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import create_engine, pool

from alembic import context  # type: ignore[attr-defined]

# Permet l'import du package lorsque la CLI Alembic est lancée depuis la racine du dépôt
_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.append(str(_root))

from promptops.core.settings import get_settings  # noqa: E402
from promptops.infra.repo.models import Base  # noqa: E402

DEFAULT_MIGRATION_URL = "sqlite:///./promptops.db"

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    return get_settings().DATABASE_URL or DEFAULT_MIGRATION_URL


def run_migrations_offline() -> None:
    """Émet le SQL des migrations sans connexion (bindings littéraux)."""
    url = _database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        render_as_batch=url.startswith("sqlite"),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Applique les migrations sur une connexion active."""
    url = _database_url()
    connectable = create_engine(url, poolclass=pool.NullPool)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
