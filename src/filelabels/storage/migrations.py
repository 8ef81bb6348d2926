"""Database migration handling with automatic upgrade on startup"""

import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

PROJECT_DIR = Path(".filelabels")
DATABASE_PATH = PROJECT_DIR / "database.db"
CONFIG_PATH = PROJECT_DIR / "config.json"

DEFAULT_CONFIG = {
    "max_labels_per_user": 10000,
    "admin_users": [],
    "user_deletion_batch_size": 5000,
    "user_deletion_pause": 0.0,
}


def get_database_url() -> str:
    """Get database URL for current project"""
    return f"sqlite:///{DATABASE_PATH.as_posix()}"


def get_migration_config() -> Config:
    """Get Alembic configuration"""
    # This file is in filelabels/storage/, so the package root is one level up
    package_root = Path(__file__).parent.parent

    alembic_ini = package_root / "alembic.ini"
    migrations_dir = package_root / "migrations"

    if not alembic_ini.exists():
        raise FileNotFoundError(
            f"alembic.ini not found at {alembic_ini}. "
            "This indicates an incomplete installation. "
            "Please reinstall filelabels."
        )

    if not migrations_dir.exists():
        raise FileNotFoundError(
            f"migrations directory not found at {migrations_dir}. "
            "This indicates an incomplete installation. "
            "Please reinstall filelabels."
        )

    alembic_cfg = Config(str(alembic_ini))
    alembic_cfg.set_main_option("script_location", str(migrations_dir))
    alembic_cfg.set_main_option("sqlalchemy.url", get_database_url())
    return alembic_cfg


def needs_migration() -> bool:
    """Check if database needs migration"""
    if not DATABASE_PATH.exists():
        return True  # New database needs initial migration

    engine = create_engine(get_database_url())
    try:
        with engine.connect() as conn:
            context = MigrationContext.configure(conn)
            current_rev = context.get_current_revision()

        script_dir = ScriptDirectory.from_config(get_migration_config())
        head_rev = script_dir.get_current_head()

        return current_rev != head_rev
    except SQLAlchemyError as e:
        logger.warning("Error checking migration status: %s", e)
        return True  # Assume migration needed if we can't check
    finally:
        engine.dispose()


def backup_database() -> Optional[Path]:
    """Create backup before migration"""
    if DATABASE_PATH.exists():
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = DATABASE_PATH.with_name(f"database.db.backup.{timestamp}")
        try:
            shutil.copy2(DATABASE_PATH, backup_path)
            return backup_path
        except OSError as e:
            logger.warning("Could not create backup: %s", e)
            return None
    return None


def run_migrations():
    """Run any pending migrations"""
    alembic_cfg = get_migration_config()
    command.upgrade(alembic_cfg, "head")


def get_project_config() -> dict:
    """Get project configuration from .filelabels/config.json, merged over defaults"""
    config = dict(DEFAULT_CONFIG)
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH, "r") as f:
                config.update(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning("Could not read config: %s", e)
    return config


def save_project_config(config: dict):
    """Save project configuration to .filelabels/config.json"""
    CONFIG_PATH.parent.mkdir(exist_ok=True)

    with open(CONFIG_PATH, "w") as f:
        json.dump(config, f, indent=2)


def initialize_database():
    """Initialize database on first run or run migrations on upgrade"""
    PROJECT_DIR.mkdir(exist_ok=True)

    # Ensure config exists with every default filled in
    config = get_project_config()
    save_project_config(config)

    if not DATABASE_PATH.exists():
        # Fresh installation - create latest schema
        logger.info("Initializing new filelabels database...")
        run_migrations()
        logger.info("Database initialized successfully")
    elif needs_migration():
        # Existing database - migrate
        logger.info("Database migration required...")
        backup_path = backup_database()
        try:
            run_migrations()
        except Exception:
            logger.exception("Migration failed")
            if backup_path:
                logger.error("Database backup available at: %s", backup_path)
            raise
        if backup_path:
            logger.info("Migration successful! Backup created at: %s", backup_path)
        else:
            logger.info("Migration successful")
    else:
        logger.debug("Database is up to date")


async def initialize_database_async():
    """Async wrapper for database initialization"""
    initialize_database()
