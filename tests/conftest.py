"""Configuration de test pour pytest.

Chaque test reçoit un moteur SQLite en mémoire neuf (StaticPool: une seule connexion
partagée), les services branchés dessus, et un client FastAPI muni d'un jeton valide.
"""

import os
import sys

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so that
# imports like `from promptops...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from promptops.core.container import Container  # noqa: E402
from promptops.core.settings import Settings  # noqa: E402
from promptops.domain.auth import create_access_token  # noqa: E402
from promptops.domain.tenancy import ProjectScope  # noqa: E402
from promptops.infra.repo.db import get_engine  # noqa: E402
from promptops.infra.repo.models import Base  # noqa: E402
from promptops.services.dataset_service import DataSetService  # noqa: E402
from promptops.services.prompt_service import PromptService  # noqa: E402

TEST_JWT_SECRET = "test-secret"
TEST_TENANT_ID = 1
TEST_PROJECT_ID = 10
TEST_USER_ID = "user-1"


@pytest.fixture
def engine():
    """Moteur SQLite mémoire avec toutes les tables créées."""
    eng = get_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def scope() -> ProjectScope:
    return ProjectScope(TEST_TENANT_ID, TEST_PROJECT_ID, TEST_USER_ID)


@pytest.fixture
def prompt_service(engine) -> PromptService:
    return PromptService(engine)


@pytest.fixture
def dataset_service(engine) -> DataSetService:
    return DataSetService(engine)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        JWT_SECRET=TEST_JWT_SECRET,
        DB_CREATE_ALL=True,
        APP_DEBUG=False,
        APP_ENV="test",
    )


@pytest.fixture
def make_token(settings):
    """Fabrique de jetons bearer signés avec le secret de test."""

    def _make(tenant_id=TEST_TENANT_ID, sub=TEST_USER_ID, secret=None, expires_min=5):
        return create_access_token(
            secret=secret or settings.JWT_SECRET,
            alg=settings.JWT_ALG,
            expires_min=expires_min,
            payload={"sub": sub, "tenant_id": tenant_id},
        )

    return _make


@pytest.fixture
def app(engine, settings):
    from promptops.app.main import create_app

    return create_app(Container(settings=settings, engine=engine))


@pytest.fixture
def client(app, make_token) -> TestClient:
    """Client HTTP authentifié sur le tenant de test."""
    c = TestClient(app)
    c.headers.update({"Authorization": f"Bearer {make_token()}"})
    return c


@pytest.fixture
def anon_client(app) -> TestClient:
    return TestClient(app)
