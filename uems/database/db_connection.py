"""
PostgreSQL connection helper.
Provides get_db() for use by every UEMS service.
"""

import logging
import os

import psycopg2
from psycopg2.extras import DictCursor
from dotenv import load_dotenv

# Load .env variables from the project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")


def get_db():
    """
    Returns a new psycopg2 connection with dictionary-based row access.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Leaving the `with get_db()` block commits the transaction, or rolls it
    back if an exception escaped.

    Returns:
        psycopg2.extensions.connection: A connection object with DictCursor factory.

    Raises:
        psycopg2.Error: If connection fails.
    """
    try:
        conn = psycopg2.connect(DATABASE_URL)
        # Rows behave like dicts, e.g. {"event_id": 1, "title": "..."}
        conn.cursor_factory = DictCursor
        return conn
    except psycopg2.Error as e:
        logging.error(f"[Database] Error connecting to database: {e}")
        raise
