"""
Module de gestion des tokens d'accès.

L'authentification elle-même est assurée en amont: ce module ne fait que signer et décoder
les jetons JWT qui portent l'utilisateur (`sub`) et son tenant (`tenant_id`).
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from jwt import InvalidTokenError
from pydantic import BaseModel, ValidationError


class TokenData(BaseModel):
    """Données contenues dans un token JWT."""

    sub: str
    tenant_id: int


def create_access_token(
    secret: str, alg: str, expires_min: int, payload: dict[str, Any]
) -> str:
    """Crée un token JWT d'accès avec expiration."""
    to_encode = payload.copy()
    expire = datetime.now(UTC) + timedelta(minutes=expires_min)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret, algorithm=alg)


def decode_token(token: str, secret: str, alg: str) -> TokenData | None:
    """Décode et valide un token JWT (None si signature, expiration ou claims invalides)."""
    try:
        data = jwt.decode(token, secret, algorithms=[alg])
        token_data = TokenData(**data)
    except (InvalidTokenError, ValidationError):
        return None
    if token_data.tenant_id <= 0:
        return None
    return token_data
