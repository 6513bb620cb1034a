# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Database engine, sessions and lazy schema initialization."""

import logging
import threading

from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import Column, Engine, create_engine, event, inspect
from sqlalchemy.orm import sessionmaker

from timeline.config import settings
from timeline.models.base import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str) -> Engine:
    """Create an engine; SQLite connections enforce foreign keys."""
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, pool_pre_ping=True)


def init_schema(engine: Engine) -> list[str]:
    """Create missing tables and add missing nullable columns.

    Safe to run any number of times. Existing rows are never touched; only
    columns that are nullable in the models are added to existing tables.

    Returns:
        List of ``table.column`` names that were added.
    """
    # Make sure every model is registered on the metadata
    import timeline.models  # noqa: F401

    Base.metadata.create_all(bind=engine)

    added: list[str] = []
    with engine.begin() as conn:
        inspector = inspect(conn)
        operations = Operations(MigrationContext.configure(conn))
        for table in Base.metadata.sorted_tables:
            existing = {col["name"] for col in inspector.get_columns(table.name)}
            for column in table.columns:
                if column.name in existing or not column.nullable:
                    continue
                operations.add_column(
                    table.name,
                    Column(column.name, column.type, nullable=True),
                )
                added.append(f"{table.name}.{column.name}")

    if added:
        logger.info(f"Added columns during schema init: {', '.join(added)}")
    return added


class SchemaInitializer:
    """Runs :func:`init_schema` once per engine, even under concurrent first use."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._lock = threading.Lock()
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def ensure(self) -> None:
        if self._ready:
            return
        with self._lock:
            if self._ready:
                return
            init_schema(self.engine)
            self._ready = True


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
schema = SchemaInitializer(engine)
