import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from docmerge.config.settings import Settings
from docmerge.database.connection import close_pool, ensure_schema, get_connection, init_pool


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "docmerge_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        ensure_schema()
    except Exception as e:
        close_pool()
        pytest.skip(
            f"PostgreSQL test DB not available: {e}. "
            "Set DB_* env to point at a disposable database"
        )
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup() -> Generator[list[str], None, None]:
    template_ids: list[str] = []
    yield template_ids
    if not template_ids:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for template_id in template_ids:
                cur.execute("DELETE FROM agreement_templates WHERE id = %s", (template_id,))
        conn.commit()
