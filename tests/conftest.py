import importlib
import os
from contextlib import ExitStack
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from alembic import command
from alembic.config import Config

from tests.db_utils import postgres_test_database


def _setup_app(database_url: str):
    os.environ["DATABASE_URL"] = database_url

    import app.wms.core.config as config
    import app.wms.db.session as session
    import app.main as main

    importlib.reload(config)
    importlib.reload(session)
    importlib.reload(main)

    return main.create_app(), session


def _run_migrations(database_url: str):
    os.environ["DATABASE_URL"] = database_url
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", database_url)
    config.attributes["configure_logger"] = False
    command.upgrade(config, "head")


@pytest.fixture()
def client(tmp_path: Path):
    database_url = os.getenv("DATABASE_URL", "")

    with ExitStack() as stack:
        if database_url.startswith("postgres"):
            database_url = stack.enter_context(postgres_test_database(database_url))
        else:
            database_url = f"sqlite+pysqlite:///{tmp_path / 'wms.db'}"

        _run_migrations(database_url)
        app, session = _setup_app(database_url)
        stack.callback(session.engine.dispose)

        with TestClient(app) as client:
            yield client


@pytest.fixture()
def db_session(client):
    from app.wms.db.session import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def catalog(db_session):
    from tests.wms_helpers import create_catalog

    return create_catalog(db_session)
