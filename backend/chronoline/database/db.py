"""
Database connection and initialization.
"""

import aiosqlite
from pathlib import Path
from chronoline.config import settings
from chronoline.logging import get_logger

logger = get_logger('database')

DATABASE_PATH = Path(settings.DATABASE_PATH)
SCHEMA_PATH = Path(__file__).parent / "init_db.sql"

# Columns added after the first schema release; older databases get them via ALTER TABLE.
_ADDITIVE_COLUMNS: dict[str, dict[str, str]] = {
    "users": {"updated_at": "TEXT NOT NULL DEFAULT ''"},
    "events": {
        "link": "TEXT",
        "track": "INTEGER NOT NULL DEFAULT 0",
    },
    "highlights": {
        "start_label": "TEXT",
        "end_label": "TEXT",
    },
}


async def _table_columns(db: aiosqlite.Connection, table_name: str) -> set[str]:
    cursor = await db.execute(f"PRAGMA table_info({table_name})")
    rows = await cursor.fetchall()
    return {row[1] for row in rows}


async def _migrate_additive_columns(db: aiosqlite.Connection) -> None:
    for table_name, columns in _ADDITIVE_COLUMNS.items():
        existing = await _table_columns(db, table_name)
        for column, ddl in columns.items():
            if column in existing:
                continue
            logger.info(f"Applying migration: add {table_name}.{column}")
            await db.execute(f"ALTER TABLE {table_name} ADD COLUMN {column} {ddl}")


async def init_db(db_path: str | Path | None = None):
    """
    Initialize database with schema.

    :param db_path: Database file to initialize; defaults to the configured path
    :type db_path: str | Path | None
    :return: None
    :rtype: None
    """
    path = Path(db_path) if db_path else DATABASE_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    async with aiosqlite.connect(path) as db:
        with open(SCHEMA_PATH) as f:
            await db.executescript(f.read())
        await _migrate_additive_columns(db)
        await db.commit()
        logger.info(f"Database initialized at {path}")
