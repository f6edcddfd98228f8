"""
Tests for startup environment validation and runtime configuration.
"""

import logging
from pathlib import Path

from src.api.deps import get_admission_config, get_credential_config, get_rules
from src.app_shell.config import validate_environment


class TestValidateEnvironment:
    def test_ok(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("JWT_SECRET", "x")

        assert validate_environment(tmp_path / "data", Path("migrations")) == []
        assert (tmp_path / "data").is_dir()

    def test_missing_migrations(self, tmp_path: Path) -> None:
        problems = validate_environment(tmp_path, tmp_path / "nope")
        assert any("Migrations" in p for p in problems)

    def test_missing_secret_is_logged_not_fatal(self, tmp_path: Path, monkeypatch, caplog) -> None:
        monkeypatch.delenv("JWT_SECRET", raising=False)

        with caplog.at_level(logging.ERROR):
            problems = validate_environment(tmp_path, Path("migrations"))

        assert problems == []
        assert "JWT_SECRET" in caplog.text


class TestRuntimeConfig:
    def test_secret_read_per_call(self, monkeypatch) -> None:
        rules = get_rules()
        monkeypatch.setenv("JWT_SECRET", "first")
        assert get_credential_config(rules).secret == "first"

        monkeypatch.setenv("JWT_SECRET", "second")
        assert get_credential_config(rules).secret == "second"

    def test_empty_secret_is_none(self, monkeypatch) -> None:
        monkeypatch.setenv("JWT_SECRET", "")
        assert get_credential_config(get_rules()).secret is None

    def test_strict_only_for_literal_true(self, monkeypatch) -> None:
        rules = get_rules()
        credentials = get_credential_config(rules)

        for value, expected in [("true", True), ("TRUE", False), ("1", False), ("false", False)]:
            monkeypatch.setenv("WS_AUTH_STRICT", value)
            assert get_admission_config(rules, credentials).strict is expected

        monkeypatch.delenv("WS_AUTH_STRICT")
        assert get_admission_config(rules, credentials).strict is False
