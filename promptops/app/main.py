"""
Application principale FastAPI.

Ce module assemble tous les composants de l'application : middlewares, routes, métriques
et gestion des erreurs de l'API prompts/datasets.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Attacher le conteneur (services, settings) à `app.state`
- Ajouter les middlewares (request id, métriques, timing) et les handlers d'erreurs
- Monter les routers (santé, prompts, datasets, API publique v1, métriques)
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from promptops.api.errors import register_error_handlers
from promptops.api.routes_datasets import router as datasets_router
from promptops.api.routes_health import router as health_router
from promptops.api.routes_prompts import router as prompts_router
from promptops.api.routes_public import router as public_router
from promptops.app.metrics import PrometheusMiddleware, metrics_router
from promptops.core.container import Container, container as default_container
from promptops.core.logging import setup_logging
from promptops.middlewares.request_id import RequestIDMiddleware
from promptops.middlewares.timing import TimingMiddleware


def create_app(container: Container | None = None) -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution du conteneur fourni (ou du conteneur par défaut)
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes
    """
    container = container or default_container
    settings = container.settings
    setup_logging(
        app_env=settings.APP_ENV,
        level=logging.DEBUG if settings.APP_DEBUG else logging.INFO,
    )
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.state.container = container

    register_error_handlers(app)
    if settings.METRICS_ENABLED:
        app.add_middleware(PrometheusMiddleware)
        app.include_router(metrics_router)
    app.add_middleware(TimingMiddleware)
    # ajouté en dernier: le plus externe, l'identifiant existe pour toute la chaîne
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health_router)
    app.include_router(prompts_router)
    app.include_router(datasets_router)
    app.include_router(public_router)
    return app


app = create_app()
