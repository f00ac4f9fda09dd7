"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, moteur SQLAlchemy, services) et expose un
singleton `container` utilisé par le reste de l'application. Les tests construisent leur
propre `Container(engine=...)` et le passent à `create_app`.
"""

from sqlalchemy.engine import Engine

from promptops.core.settings import Settings, get_settings
from promptops.infra.repo.db import get_engine
from promptops.infra.repo.models import Base
from promptops.services.dataset_service import DataSetService
from promptops.services.prompt_service import PromptService


class Container:
    def __init__(self, settings: Settings | None = None, engine: Engine | None = None):
        self.settings = settings or get_settings()
        self.engine = engine or get_engine(
            self.settings.DATABASE_URL,
            echo=self.settings.DB_ECHO,
            busy_timeout_s=self.settings.DB_BUSY_TIMEOUT_S,
        )
        if self.settings.DB_CREATE_ALL:
            Base.metadata.create_all(self.engine)
        self.storage_backend = self.engine.dialect.name
        self.prompt_service = PromptService(
            self.engine, copy_slug_max_attempts=self.settings.COPY_SLUG_MAX_ATTEMPTS
        )
        self.dataset_service = DataSetService(self.engine)


container = Container()
