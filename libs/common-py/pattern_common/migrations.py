"""
Alembic runner for the pattern matching schema.

    pattern-migrate upgrade          # to head
    pattern-migrate downgrade -r base
    pattern-migrate current
"""
import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine

from .error_codes import ErrorCode, FatalError
from .logging_config import configure_logging

logger = configure_logging("common-py:migrations")

DEFAULT_ALEMBIC_CONFIG = "infra/migrations/alembic.ini"


@dataclass
class MigrationConfig:
    """Configuration for database migrations"""

    database_url: str
    alembic_config_path: str = DEFAULT_ALEMBIC_CONFIG
    dry_run: bool = False

    @classmethod
    def from_env(cls) -> "MigrationConfig":
        database_url = os.getenv("DATABASE_URL") or os.getenv("POSTGRES_DSN")
        if not database_url:
            raise FatalError(
                ErrorCode.INVALID_CONFIGURATION,
                "DATABASE_URL or POSTGRES_DSN environment variable is required",
            )
        return cls(
            database_url=database_url,
            alembic_config_path=os.getenv("ALEMBIC_CONFIG", DEFAULT_ALEMBIC_CONFIG),
            dry_run=os.getenv("MIGRATION_DRY_RUN", "false").lower() == "true",
        )

    def validate(self) -> None:
        if not Path(self.alembic_config_path).exists():
            raise FatalError(
                ErrorCode.INVALID_CONFIGURATION,
                f"Alembic config file not found: {self.alembic_config_path}",
            )


class MigrationExecutor:
    """Thin wrapper over alembic commands with logging."""

    def __init__(self, config: MigrationConfig):
        config.validate()
        self.config = config
        self.alembic_cfg = Config(config.alembic_config_path, ini_section="alembic")
        self.alembic_cfg.set_main_option("sqlalchemy.url", config.database_url)

    def current_revision(self) -> Optional[str]:
        engine = create_engine(self.config.database_url)
        try:
            with engine.connect() as conn:
                return MigrationContext.configure(conn).get_current_revision()
        finally:
            engine.dispose()

    def list_migrations(self) -> List[str]:
        versions_dir = Path(self.config.alembic_config_path).parent / "versions"
        return sorted(p.stem for p in versions_dir.glob("*.py") if p.name != "__init__.py")

    def upgrade(self, revision: str = "head") -> None:
        self._run("upgrade", revision)

    def downgrade(self, revision: str) -> None:
        self._run("downgrade", revision)

    def _run(self, command_name: str, revision: str) -> None:
        logger.info("Migration started", command=command_name, revision=revision, dry_run=self.config.dry_run)
        # Dry runs emit the SQL instead of executing it
        getattr(command, command_name)(self.alembic_cfg, revision, sql=self.config.dry_run)
        logger.info("Migration completed", command=command_name, revision=revision)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Pattern matching schema migrations")
    parser.add_argument("action", choices=("upgrade", "downgrade", "current", "list"))
    parser.add_argument("-r", "--revision", default=None)
    args = parser.parse_args(argv)

    executor = MigrationExecutor(MigrationConfig.from_env())
    if args.action == "upgrade":
        executor.upgrade(args.revision or "head")
    elif args.action == "downgrade":
        executor.downgrade(args.revision or "-1")
    elif args.action == "current":
        logger.info("Current revision", revision=executor.current_revision())
    else:
        for name in executor.list_migrations():
            logger.info("Migration available", name=name)


if __name__ == "__main__":
    main()
