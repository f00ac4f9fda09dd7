"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
    )
    APP_NAME: str = "promptops-backend"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000

    # Base de données (sqlite mémoire par défaut pour dev/tests)
    DATABASE_URL: str | None = None
    DB_ECHO: bool = False
    DB_CREATE_ALL: bool = True
    DB_BUSY_TIMEOUT_S: float = 30.0

    # JWT/Auth (le scope tenant est lu dans les claims)
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALG: str = "HS256"
    JWT_EXPIRES_MIN: int = 60

    # Pagination des enregistrements de datasets
    PAGINATION_DEFAULT_PAGE_SIZE: int = 10
    PAGINATION_MIN_PAGE_SIZE: int = 1
    PAGINATION_MAX_PAGE_SIZE: int = 200

    # Nombre de tentatives de nommage lors d'une copie en conflit d'index unique
    COPY_SLUG_MAX_ATTEMPTS: int = 5

    METRICS_ENABLED: bool = True


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
