"""Tests de la résolution du scope depuis le jeton bearer et de l'enveloppe d'erreur."""

from __future__ import annotations

from promptops.core.http_constants import HTTP_OK, HTTP_UNAUTHORIZED
from promptops.domain.auth import create_access_token, decode_token

URL = "/projects/10/prompts"
SECRET = "s3cret"
TENANT_ID = 7


def test_token_roundtrip_and_rejections() -> None:
    token = create_access_token(SECRET, "HS256", 5, {"sub": "u", "tenant_id": TENANT_ID})
    data = decode_token(token, SECRET, "HS256")
    assert data is not None and data.tenant_id == TENANT_ID and data.sub == "u"

    assert decode_token(token, "other", "HS256") is None
    assert decode_token("garbage", SECRET, "HS256") is None
    expired = create_access_token(SECRET, "HS256", -1, {"sub": "u", "tenant_id": TENANT_ID})
    assert decode_token(expired, SECRET, "HS256") is None
    no_tenant = create_access_token(SECRET, "HS256", 5, {"sub": "u"})
    assert decode_token(no_tenant, SECRET, "HS256") is None
    bad_tenant = create_access_token(SECRET, "HS256", 5, {"sub": "u", "tenant_id": 0})
    assert decode_token(bad_tenant, SECRET, "HS256") is None


def test_missing_token_is_unauthorized(anon_client) -> None:
    r = anon_client.get(URL)
    assert r.status_code == HTTP_UNAUTHORIZED
    body = r.json()
    assert body["code"] == "UNAUTHORIZED"
    assert body["message"] == "missing_token"


def test_invalid_token_is_unauthorized(anon_client, make_token) -> None:
    r = anon_client.get(URL, headers={"Authorization": f"Bearer {make_token(secret='nope')}"})
    assert r.status_code == HTTP_UNAUTHORIZED
    assert r.json()["message"] == "invalid_token"


def test_error_envelope_carries_request_id(client) -> None:
    r = client.get(f"{URL}/999", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    assert r.json()["trace_id"] == "req-123"


def test_valid_token_is_accepted(client) -> None:
    assert client.get(URL).status_code == HTTP_OK
