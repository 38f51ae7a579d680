"""
Create Database Tables Using SQLAlchemy

This script creates all database tables directly using SQLAlchemy's create_all()
method. This bypasses Alembic migrations and is useful for local development
and tests against a scratch database.
"""
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.publicmap.db.session import engine, create_all_tables
from src.publicmap.utils.logger import get_logger, setup_logging
import sqlalchemy as sa

logger = get_logger(__name__)


def main():
    """Create all database tables."""
    setup_logging()
    logger.info("database_table_creation_started")

    if engine.dialect.name == "postgresql":
        with engine.connect() as conn:
            conn.execute(sa.text("CREATE EXTENSION IF NOT EXISTS postgis"))
            conn.commit()

    create_all_tables(engine)

    tables = sa.inspect(engine).get_table_names()
    logger.info("database_tables_verified", count=len(tables), tables=sorted(tables))


if __name__ == "__main__":
    main()
