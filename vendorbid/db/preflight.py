"""
Startup connectivity check for the configured database.
"""
import time

from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError

from vendorbid.core.logging import get_logger

logger = get_logger("db_preflight")

FATAL_MARKERS = ("password authentication failed", "does not exist")


def _safe_url(engine: Engine) -> str:
    return make_url(str(engine.url)).render_as_string(hide_password=True)


def run_db_preflight(engine: Engine = None, retries: int = 5, delay: float = 2) -> None:
    """
    Run `SELECT 1`, retrying with linear backoff while the server comes up.

    Bad credentials or a missing database stop immediately; the process
    exits once the retries are spent.
    """
    if engine is None:
        from vendorbid.db.session import engine

    target = _safe_url(engine)
    logger.info(f"Running DB preflight check against {target}")

    for attempt in range(1, retries + 1):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except OperationalError as e:
            reason = str(e.orig or e).strip().splitlines()[0]
            if any(marker in reason.lower() for marker in FATAL_MARKERS):
                logger.error(f"Database rejected the connection: {reason}")
                raise SystemExit(1)
            if attempt == retries:
                logger.error(f"Database unreachable after {retries} attempts: {reason}")
                raise SystemExit(1)
            wait = delay * attempt
            logger.warning(f"Preflight attempt {attempt}/{retries} failed ({reason}); retrying in {wait}s")
            time.sleep(wait)
        else:
            logger.info("Database connection successful")
            return
