def test_get_engine_kwargs_sqlite_has_check_same_thread():
    from battleplan.database import database as db

    kwargs = db.get_engine_kwargs("sqlite:///./battleplan.db")
    assert kwargs["connect_args"]["check_same_thread"] is False
    # SQLite should not require pool sizing knobs.
    assert "pool_size" not in kwargs
    assert "max_overflow" not in kwargs
    assert kwargs["pool_pre_ping"] is True


def test_get_engine_kwargs_postgres_has_conservative_pooling(monkeypatch):
    from battleplan.database import database as db

    monkeypatch.setenv("DB_POOL_SIZE", "5")
    monkeypatch.setenv("DB_MAX_OVERFLOW", "5")
    monkeypatch.setenv("DB_POOL_TIMEOUT_SEC", "30")

    kwargs = db.get_engine_kwargs("postgresql+psycopg://u:p@localhost:5432/db")
    assert "connect_args" not in kwargs
    assert kwargs["pool_pre_ping"] is True
    assert kwargs["pool_size"] == 5
    assert kwargs["max_overflow"] == 5
    assert kwargs["pool_timeout"] == 30


def test_sqlite_pragmas_listener_is_guarded():
    from battleplan.database import database as db

    assert db._is_sqlite_url("sqlite:///./battleplan.db") is True
    assert db._is_sqlite_url("postgresql+psycopg://u:p@localhost/db") is False


def test_wal_pragma_listener_is_bound_to_engine():
    from sqlalchemy import event
    from battleplan.database import database as db

    assert event.contains(db.engine, "connect", db.set_sqlite_pragmas)


def test_debug_env_turns_on_sql_echo(monkeypatch):
    from battleplan.database import database as db

    monkeypatch.setenv("DEBUG", "true")
    assert db.get_engine_kwargs("sqlite:///./battleplan.db")["echo"] is True
    monkeypatch.setenv("DEBUG", "false")
    assert db.get_engine_kwargs("sqlite:///./battleplan.db")["echo"] is False


def test_init_db_creates_battle_plan_tables(monkeypatch):
    from sqlalchemy import create_engine, inspect
    from sqlalchemy.pool import StaticPool
    from battleplan.database import database as db

    engine = create_engine("sqlite:///:memory:", poolclass=StaticPool)
    monkeypatch.setattr(db, "engine", engine)
    monkeypatch.setenv("RUN_MIGRATIONS", "true")

    # SQLite never goes through alembic, even when migrations are requested
    db.init_db()

    tables = set(inspect(engine).get_table_names())
    assert {"tasks", "calibration_entries", "settings", "routines"} <= tables
