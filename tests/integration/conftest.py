import os
import uuid
from collections.abc import Generator
from importlib.resources import files
from typing import Any

import psycopg
import pytest

from certguard.config.settings import Settings
from certguard.database.connection import close_pool, get_connection, init_pool

SCHEMA_PATH = files("certguard.database") / "schema.sql"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "certguard_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute(SCHEMA_PATH.read_text())
            conn.commit()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def certificate_code() -> str:
    return f"IT-{uuid.uuid4().hex[:12].upper()}"


@pytest.fixture
def integration_cleanup(
    integration_pool: None,
) -> Generator[list[tuple[str, str]], None, None]:
    cleanup: list[tuple[str, str]] = []
    yield cleanup
    if not cleanup:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            for table, code in cleanup:
                if table == "certificate_submissions":
                    cur.execute(
                        "DELETE FROM certificate_submissions WHERE certificate_code = %s",
                        (code,),
                    )
            for table, code in cleanup:
                if table == "certificate_validation_logs":
                    cur.execute(
                        "DELETE FROM certificate_validation_logs WHERE certificate_code = %s",
                        (code,),
                    )
            for table, code in cleanup:
                if table == "verified_certificates":
                    cur.execute(
                        "DELETE FROM verified_certificates WHERE certificate_code = %s",
                        (code,),
                    )
        conn.commit()
