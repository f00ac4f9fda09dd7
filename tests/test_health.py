"""Tests pour l'endpoint de santé de l'application."""

from promptops.core.http_constants import HTTP_OK


def test_health(anon_client):
    """Teste que l'endpoint de santé retourne un statut OK sans authentification."""
    r = anon_client.get("/health")
    assert r.status_code == HTTP_OK
    assert r.json() == {"status": "ok", "storage": "sqlite", "env": "test"}
    assert "X-Process-Time-ms" in r.headers
    assert r.headers["X-Request-ID"]
