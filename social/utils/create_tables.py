"""
Utility script to create the database tables.

The schema itself lives in social/core/db.py and is shared with the application.
"""

import asyncio
import logging
from typing import Optional

import asyncpg

from social.config_secrets import DATABASE_URL
from social.core.db import SCHEMA


async def create_database_tables(connection_string: Optional[str] = None) -> None:
    """
    Create the users, posts and comments tables if they do not exist.

    Args:
        connection_string: Database connection string. If not provided,
            uses the DATABASE_URL from config_secrets.py.
    """
    conn_string = connection_string or DATABASE_URL

    logging.info("Connecting to database...")
    conn = await asyncpg.connect(conn_string)

    try:
        logging.info("Creating tables...")
        await conn.execute(SCHEMA)
        logging.info("All tables created successfully")
    finally:
        await conn.close()
        logging.info("Database connection closed")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(create_database_tables())
