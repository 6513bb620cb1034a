# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Tests for lazy schema initialization."""

import threading

from sqlalchemy import inspect, text

from timeline import database
from timeline.database import SchemaInitializer, init_schema, make_engine


def test_init_schema_creates_tables_and_is_idempotent(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'fresh.db'}")

    init_schema(engine)
    assert init_schema(engine) == []

    tables = set(inspect(engine).get_table_names())
    assert {"events", "photos", "background_images"} <= tables


def test_init_schema_adds_missing_nullable_columns_without_data_loss(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'old.db'}")
    with engine.begin() as conn:
        conn.execute(
            text(
                "CREATE TABLE events ("
                " id CHAR(32) PRIMARY KEY,"
                " title VARCHAR(255) NOT NULL,"
                " date DATE NOT NULL,"
                " created_at DATETIME NOT NULL,"
                " updated_at DATETIME NOT NULL)"
            )
        )
        conn.execute(
            text(
                "INSERT INTO events VALUES "
                "('0123456789abcdef0123456789abcdef', 'First date', '2020-02-14',"
                " '2020-02-14 10:00:00', '2020-02-14 10:00:00')"
            )
        )

    added = init_schema(engine)

    assert sorted(added) == ["events.latitude", "events.location", "events.longitude"]
    columns = {col["name"] for col in inspect(engine).get_columns("events")}
    assert {"location", "latitude", "longitude"} <= columns
    with engine.connect() as conn:
        row = conn.execute(text("SELECT title, location FROM events")).one()
    assert row.title == "First date"
    assert row.location is None


def test_schema_initializer_runs_once_under_concurrency(monkeypatch, tmp_path):
    calls = []
    monkeypatch.setattr(database, "init_schema", lambda engine: calls.append(engine))
    engine = make_engine(f"sqlite:///{tmp_path / 'once.db'}")
    initializer = SchemaInitializer(engine)

    threads = [threading.Thread(target=initializer.ensure) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    initializer.ensure()

    assert calls == [engine]
    assert initializer.ready is True


def test_schema_initializer_retries_after_failure(monkeypatch, tmp_path):
    attempts = []

    def flaky(engine):
        attempts.append(engine)
        if len(attempts) == 1:
            raise RuntimeError("database not reachable")

    monkeypatch.setattr(database, "init_schema", flaky)
    initializer = SchemaInitializer(make_engine(f"sqlite:///{tmp_path / 'r.db'}"))

    try:
        initializer.ensure()
    except RuntimeError:
        pass
    assert initializer.ready is False

    initializer.ensure()
    assert initializer.ready is True
    assert len(attempts) == 2
