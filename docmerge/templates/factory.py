from pathlib import Path

from docmerge.config.settings import Settings
from docmerge.database.repositories.template_repository import PostgresTemplateRepository
from docmerge.templates.json_repository import JsonFileTemplateRepository
from docmerge.templates.memory_repository import InMemoryTemplateRepository
from docmerge.templates.repository import TemplateRepository


class TemplateRepositoryFactory:
    """Creates the configured template repository."""

    STORES = ("memory", "json", "postgres")

    @classmethod
    def create(cls, settings: Settings) -> TemplateRepository:
        store = settings.template_store.lower()
        if store == "memory":
            return InMemoryTemplateRepository()
        if store == "json":
            return JsonFileTemplateRepository(Path(settings.template_store_path))
        if store == "postgres":
            return PostgresTemplateRepository.connect(settings)
        raise ValueError(f"Unknown template store '{store}'. Choose from: {list(cls.STORES)}")
