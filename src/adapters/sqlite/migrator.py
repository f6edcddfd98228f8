import logging
import sqlite3
from contextlib import closing
from pathlib import Path

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"


class SQLiteMigrator:
    """
    Applies `migrations/*.sql` in filename order, once each.

    Only the part of a file before `-- Down` is executed. Applied filenames
    are tracked in `_migrations`.
    """

    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(
            "CREATE TABLE IF NOT EXISTS _migrations ("
            " id INTEGER PRIMARY KEY AUTOINCREMENT,"
            " filename TEXT UNIQUE NOT NULL,"
            " applied_at DATETIME DEFAULT CURRENT_TIMESTAMP)"
        )
        return conn

    def available(self) -> list[str]:
        return sorted(p.name for p in self.migrations_dir.glob("*.sql"))

    def pending(self) -> list[str]:
        with closing(self._connect()) as conn:
            done = {row[0] for row in conn.execute("SELECT filename FROM _migrations")}
        return [name for name in self.available() if name not in done]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations. Returns the filenames applied."""
        applied: list[str] = []
        with closing(self._connect()) as conn:
            done = {row[0] for row in conn.execute("SELECT filename FROM _migrations")}
            for name in self.available():
                if name in done:
                    continue
                logger.info("Applying migration: %s", name)
                self._apply(conn, name)
                applied.append(name)
        return applied

    def _apply(self, conn: sqlite3.Connection, name: str) -> None:
        up_script = (self.migrations_dir / name).read_text().split(DOWN_MARKER)[0]
        try:
            # executescript commits whatever is pending, then runs the script as
            # given. The leading BEGIN keeps the script and its bookkeeping row
            # in one transaction.
            conn.executescript("BEGIN;\n" + up_script)
            conn.execute("INSERT INTO _migrations (filename) VALUES (?)", (name,))
            conn.commit()
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise RuntimeError(f"Migration {name} failed: {e}") from e
