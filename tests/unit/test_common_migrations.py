"""Tests for the alembic runner configuration."""

from pathlib import Path
from unittest.mock import patch

import pytest

from pattern_common.error_codes import FatalError
from pattern_common.migrations import MigrationConfig, MigrationExecutor, main

pytestmark = pytest.mark.unit

ALEMBIC_INI = str(Path(__file__).resolve().parents[2] / "infra" / "migrations" / "alembic.ini")


class TestMigrationConfig:
    def test_requires_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("POSTGRES_DSN", raising=False)

        with pytest.raises(FatalError):
            MigrationConfig.from_env()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/x")
        monkeypatch.setenv("MIGRATION_DRY_RUN", "true")

        cfg = MigrationConfig.from_env()

        assert cfg.database_url == "postgresql://u:p@db/x"
        assert cfg.dry_run is True

    def test_missing_alembic_ini(self):
        with pytest.raises(FatalError):
            MigrationExecutor(MigrationConfig("postgresql://u:p@db/x", alembic_config_path="/nope/alembic.ini"))


class TestMigrationExecutor:
    def test_lists_schema_revision(self):
        executor = MigrationExecutor(MigrationConfig("postgresql://u:p@db/x", ALEMBIC_INI))

        assert "001_pattern_matching_schema" in executor.list_migrations()

    def test_upgrade_delegates_to_alembic(self):
        executor = MigrationExecutor(MigrationConfig("postgresql://u:p@db/x", ALEMBIC_INI, dry_run=True))

        with patch("pattern_common.migrations.command") as command:
            executor.upgrade()

        command.upgrade.assert_called_once_with(executor.alembic_cfg, "head", sql=True)

    def test_cli_downgrade_defaults_to_previous(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/x")
        monkeypatch.setenv("ALEMBIC_CONFIG", ALEMBIC_INI)

        with patch("pattern_common.migrations.command") as command:
            main(["downgrade"])

        assert command.downgrade.call_args.args[1] == "-1"
