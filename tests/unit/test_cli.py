"""
Tests for the operator CLI.
"""

import sqlite3

from src.app_shell.cli import main


class TestCli:
    def test_migrate(self, tmp_path, capsys) -> None:
        db = tmp_path / "nested" / "cli.db"

        assert main(["--db", str(db), "migrate"]) == 0
        assert "Applied 1 migration(s)." in capsys.readouterr().out

        conn = sqlite3.connect(db)
        count = conn.execute("SELECT COUNT(*) FROM _migrations").fetchone()[0]
        conn.close()
        assert count == 1

    def test_send_upcoming_on_empty_db(self, db_path, capsys) -> None:
        assert main(["--db", db_path, "send_upcoming", "--window", "5"]) == 0
        assert "Processed 0 upcoming consultations" in capsys.readouterr().out

    def test_migrate_dry_run(self, tmp_path, capsys) -> None:
        db = str(tmp_path / "dry.db")

        assert main(["--db", db, "migrate", "--dry-run"]) == 0
        assert "1 pending migration(s): 001_initial.sql" in capsys.readouterr().out

        main(["--db", db, "migrate"])
        capsys.readouterr()
        main(["--db", db, "migrate", "--dry-run"])
        assert "0 pending migration(s): none" in capsys.readouterr().out
