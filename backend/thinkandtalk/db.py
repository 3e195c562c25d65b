import logging

import psycopg2
from psycopg2.extras import RealDictCursor

from thinkandtalk.config import get_required_env

logger = logging.getLogger(__name__)


# -------------------------------------------------
# DB CONNECTION (LAZY, SAFE)
# -------------------------------------------------
def get_db() -> psycopg2.extensions.connection:
    """
    Returns a new PostgreSQL connection to the Supabase database.
    Caller is responsible for closing it.
    Rows come back as dicts (RealDictCursor).
    """
    database_url = get_required_env("DATABASE_URL")

    try:
        return psycopg2.connect(
            database_url,
            cursor_factory=RealDictCursor,
            sslmode="require",      # Supabase external connections
            connect_timeout=5,      # pooler can hang 30-60s otherwise
        )
    except Exception as e:
        logger.exception(f"❌ Database connection failed → {e}")
        raise RuntimeError("Database connection failed") from e
