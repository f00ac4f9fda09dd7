"""Middleware Starlette pour mesurer le temps de traitement des requêtes.

Ajoute l'en-tête X-Process-Time-ms et journalise les requêtes dépassant un seuil.
"""

import time
from collections.abc import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

log = structlog.get_logger(__name__)

DEFAULT_SLOW_REQUEST_MS = 500


class TimingMiddleware(BaseHTTPMiddleware):
    """Mesure la durée de chaque requête HTTP et l'expose en en-tête de réponse."""

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = "X-Process-Time-ms",
        slow_request_ms: int = DEFAULT_SLOW_REQUEST_MS,
    ) -> None:
        """Initialise le middleware.

        Args:
            app: Application ASGI à wrapper.
            header_name: Nom de l'en-tête HTTP pour le temps de traitement.
            slow_request_ms: Seuil au-delà duquel la requête est journalisée.
        """
        super().__init__(app)
        self.header_name = header_name
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request, call_next: Callable):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers[self.header_name] = str(duration_ms)
        if duration_ms >= self.slow_request_ms:
            log.warning(
                "slow_request",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=duration_ms,
            )
        return response
