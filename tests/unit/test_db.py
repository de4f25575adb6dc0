from daytoday import db
from daytoday.db import MemoryBackend, SqliteBackend, load_migrations


def test_init_creates_kv_table(tmp_daytoday_dir):
    with db.get_db() as conn:
        tables = {
            row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
    assert "kv" in tables
    assert "_migrations" in tables


def test_init_is_repeatable(tmp_daytoday_dir):
    db.init()
    db.init()
    with db.get_db() as conn:
        applied = conn.execute("SELECT COUNT(*) FROM _migrations").fetchone()[0]
    assert applied == len(load_migrations())


def test_sqlite_backend_roundtrip(tmp_daytoday_dir):
    backend = SqliteBackend()
    assert backend.load() is None

    backend.save('{"a": 1}')
    backend.save('{"a": 2}')

    assert backend.load() == '{"a": 2}'
    with db.get_db() as conn:
        assert conn.execute("SELECT COUNT(*) FROM kv").fetchone()[0] == 1


def test_sqlite_backend_namespaces(tmp_daytoday_dir):
    SqliteBackend(key="one").save("1")
    SqliteBackend(key="two").save("2")
    assert SqliteBackend(key="one").load() == "1"


def test_memory_backend_counts_saves():
    backend = MemoryBackend()
    backend.save("x")
    assert backend.load() == "x"
    assert backend.saves == 1
