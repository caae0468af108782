from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from docmerge.config.settings import Settings
from docmerge.database.connection import close_pool, ensure_schema, get_connection, init_pool
from docmerge.logging.logger import Log
from docmerge.templates.exceptions import TemplateError, TemplateFormatError, TemplateNotFoundError
from docmerge.templates.models import TemplateRecord
from docmerge.templates.repository import TemplateRepository
from docmerge.templates.serializer import template_from_dict, template_to_dict


class PostgresTemplateRepository(TemplateRepository):
    """Database operations for the agreement_templates table.

    Metadata columns are kept for listing; the full record lives in the
    ``payload`` JSONB column.
    """

    def __init__(self, owns_pool: bool = False) -> None:
        self._owns_pool = owns_pool

    @classmethod
    def connect(cls, settings: Settings) -> "PostgresTemplateRepository":
        """Open the connection pool and make sure the templates table exists.

        The returned repository closes the pool when it is closed.

        Raises:
            TemplateError: if the database cannot be reached.
        """
        init_pool(settings)
        try:
            ensure_schema()
        except psycopg.Error as exc:
            close_pool()
            raise TemplateError(f"Template database unavailable: {exc}") from exc
        Log.info(f"Template store ready on {settings.db_host}:{settings.db_port}")
        return cls(owns_pool=True)

    def close(self) -> None:
        if self._owns_pool:
            close_pool()
            self._owns_pool = False

    def load(self, template_id: str) -> TemplateRecord:
        """Find a template by ID.

        Raises:
            TemplateNotFoundError: if no template with this ID exists.
        """
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT payload
                    FROM agreement_templates
                    WHERE id = %s
                    """,
                    (template_id,),
                )
                row = cur.fetchone()

        if row is None:
            raise TemplateNotFoundError(f"Template {template_id} not found")

        payload: Any = row["payload"]
        if not isinstance(payload, dict):
            raise TemplateFormatError(f"Template {template_id} payload is not an object")
        return template_from_dict(payload)

    def save(self, template: TemplateRecord) -> None:
        """Insert or overwrite a template row."""
        payload = template_to_dict(template)
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO agreement_templates
                        (id, name, category, status, payload, updated_at)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO UPDATE
                    SET name = EXCLUDED.name,
                        category = EXCLUDED.category,
                        status = EXCLUDED.status,
                        payload = EXCLUDED.payload,
                        updated_at = EXCLUDED.updated_at
                    """,
                    (
                        template.id,
                        template.name,
                        template.category.value,
                        template.status.value,
                        Jsonb(payload),
                        template.updated_at,
                    ),
                )
            conn.commit()
