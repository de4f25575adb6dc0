# daytoday/db.py
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Protocol

from . import config
from .core.errors import StorageError

__all__ = ["Backend", "MemoryBackend", "SqliteBackend", "get_db", "init", "load_migrations"]

MIGRATIONS_TABLE = "_migrations"

Migration = tuple[str, str]


@contextmanager
def get_db(db_path: Path | None = None):
    db_path = db_path if db_path else config.DB_PATH
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def load_migrations() -> list[Migration]:
    migrations_dir = Path(__file__).parent / "migrations"
    if not migrations_dir.exists():
        return []
    return sorted(
        (sql_file.stem, sql_file.read_text()) for sql_file in migrations_dir.glob("*.sql")
    )


def _apply_migrations(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} "
        "(id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT NOT NULL UNIQUE, applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
    )
    conn.commit()

    applied = {row[0] for row in conn.execute(f"SELECT name FROM {MIGRATIONS_TABLE}").fetchall()}  # noqa: S608
    for name, sql in load_migrations():
        if name in applied:
            continue
        try:
            conn.executescript(sql)
            conn.execute(f"INSERT OR IGNORE INTO {MIGRATIONS_TABLE} (name) VALUES (?)", (name,))  # noqa: S608
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def init(db_path: Path | None = None) -> None:
    db_path = db_path if db_path else config.DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with get_db(db_path) as conn:
        _apply_migrations(conn)


# ── blob backends ────────────────────────────────────────────────────────────


class Backend(Protocol):
    def load(self) -> str | None: ...

    def save(self, blob: str) -> None: ...


class MemoryBackend:
    def __init__(self, blob: str | None = None):
        self.blob = blob
        self.saves = 0

    def load(self) -> str | None:
        return self.blob

    def save(self, blob: str) -> None:
        self.blob = blob
        self.saves += 1


class SqliteBackend:
    """The whole store as one value in the ``kv`` table, keyed by a fixed namespace."""

    def __init__(self, db_path: Path | None = None, key: str = config.STORAGE_KEY):
        self.db_path = db_path
        self.key = key

    def load(self) -> str | None:
        try:
            with get_db(self.db_path) as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (self.key,)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"cannot read store: {e}") from e
        return row[0] if row else None

    def save(self, blob: str) -> None:
        try:
            with get_db(self.db_path) as conn:
                conn.execute(
                    "INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
                    (self.key, blob),
                )
        except sqlite3.Error as e:
            raise StorageError(f"cannot write store: {e}") from e
