"""
Tests pour la résolution des variables d'environnement.

Ce module teste le chargement des settings depuis un fichier .env désigné par ENV_FILE.
"""

from __future__ import annotations

import importlib
from pathlib import Path

MAX_PAGE_SIZE = 50
COPY_ATTEMPTS = 9


def test_settings_reads_env_file(tmp_path: Path, monkeypatch) -> None:
    """
    Teste que les settings lisent correctement les fichiers d'environnement.

    Vérifie que les variables définies dans un fichier .env personnalisé sont chargées.
    """
    env = tmp_path / ".env.custom"
    env.write_text(
        f"PAGINATION_MAX_PAGE_SIZE={MAX_PAGE_SIZE}\n"
        f"COPY_SLUG_MAX_ATTEMPTS={COPY_ATTEMPTS}\n"
        "METRICS_ENABLED=false\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ENV_FILE", str(env))

    # Reload settings module to pick up new ENV_FILE
    settings_mod = importlib.import_module("promptops.core.settings")
    importlib.reload(settings_mod)
    try:
        s = settings_mod.get_settings()
        assert s.PAGINATION_MAX_PAGE_SIZE == MAX_PAGE_SIZE
        assert s.COPY_SLUG_MAX_ATTEMPTS == COPY_ATTEMPTS
        assert s.METRICS_ENABLED is False
    finally:
        monkeypatch.delenv("ENV_FILE")
        importlib.reload(settings_mod)


def test_environment_overrides_defaults(monkeypatch) -> None:
    from promptops.core.settings import Settings

    monkeypatch.setenv("JWT_ALG", "HS512")
    monkeypatch.setenv("PAGINATION_DEFAULT_PAGE_SIZE", "25")
    s = Settings()
    assert s.JWT_ALG == "HS512"
    assert s.PAGINATION_DEFAULT_PAGE_SIZE == 25  # noqa: PLR2004
