"""Tests pour les métriques Prometheus.

Vérifie l'exposition de `/metrics`, l'étiquetage par gabarit de route et les compteurs
métier du registre de versions et des datasets.
"""

from prometheus_client import REGISTRY

from promptops.core.http_constants import HTTP_CREATED, HTTP_OK

BASE = "/projects/10"


def _value(name: str, labels: dict | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_metrics_exposed(anon_client):
    """Teste que l'endpoint /metrics expose les métriques Prometheus."""
    anon_client.get("/health")
    r = anon_client.get("/metrics")
    assert r.status_code == HTTP_OK
    assert b"http_requests_total" in r.content
    assert b"prompt_versions_appended_total" in r.content


def test_http_metrics_use_route_template(client):
    before = _value(
        "http_requests_total",
        {"method": "GET", "route": "/projects/{project_id}/prompts", "status": "200"},
    )
    client.get(f"{BASE}/prompts")
    after = _value(
        "http_requests_total",
        {"method": "GET", "route": "/projects/{project_id}/prompts", "status": "200"},
    )
    assert after == before + 1


def test_business_counters(client):
    appended = _value("prompt_versions_appended_total", {"operation": "update"})
    written = _value("dataset_records_written_total")

    r = client.post(
        f"{BASE}/prompts",
        json={"name": "M", "slug": "m", "provider": "p", "model": "x"},
    )
    assert r.status_code == HTTP_CREATED
    client.put(f"{BASE}/prompts/{r.json()['prompt']['id']}", json={"body": "v2"})

    ds = client.post(f"{BASE}/datasets", json={"name": "M"}).json()["dataset"]
    client.post(
        f"{BASE}/datasets/{ds['id']}/records/batch",
        json={"records": [{"a": 1}, {"a": 2}]},
    )

    assert _value("prompt_versions_appended_total", {"operation": "update"}) == appended + 1
    assert _value("dataset_records_written_total") == written + 2  # noqa: PLR2004
