#!/usr/bin/env python
"""
Run script for the social backend.

This script serves as the entry point for the application,
handling initialization and startup of services.
"""

import argparse
import asyncio
import logging

import uvicorn

from social.config_secrets import LOG_LEVEL
from social.core.db import close_db, init_db
from social.services.user_service import reconcile_follow_graph
from social.utils.create_tables import create_database_tables


async def repair_follow_graph() -> int:
    """
    Run one reconciliation pass over the follow lists.

    Returns:
        Number of users whose lists were rewritten.
    """
    await init_db()
    try:
        return await reconcile_follow_graph()
    finally:
        await close_db()


def main(host: str = "127.0.0.1", port: int = 3000, reload: bool = True,
         workers: int = 1, create_tables: bool = False, reconcile_graph: bool = False) -> None:
    """
    Main entry point for the application.

    Args:
        host: Host to bind the server to.
        port: Port to bind the server to.
        reload: Whether to reload the server on code changes.
        workers: Number of worker processes.
        create_tables: Whether to create database tables.
        reconcile_graph: Repair the follow lists and exit without serving.
    """
    # Set up logging
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Set up the database
    if create_tables:
        asyncio.run(create_database_tables())
        logging.info("Database tables created")

    if reconcile_graph:
        repaired = asyncio.run(repair_follow_graph())
        logging.info(f"Follow graph reconciled, {repaired} users rewritten")
        return

    # Start the FastAPI application
    logging.info(f"Starting FastAPI application on {host}:{port}")
    uvicorn.run(
        "social.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=workers,
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the social backend")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="Host to bind the server to")
    parser.add_argument("--port", type=int, default=3000, help="Port to bind the server to")
    parser.add_argument("--no-reload", action="store_false", dest="reload", help="Disable auto-reload")
    parser.add_argument("--workers", type=int, default=1, help="Number of worker processes")
    parser.add_argument("--create-tables", action="store_true", help="Create database tables")
    parser.add_argument("--reconcile-graph", action="store_true", help="Repair follow lists and exit")

    args = parser.parse_args()
    main(
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=args.workers,
        create_tables=args.create_tables,
        reconcile_graph=args.reconcile_graph,
    )
