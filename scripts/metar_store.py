#!/usr/bin/env python3
"""
Latest METAR Store

Keeps the most recent decoded report per station in SQLite. A new report
always replaces the prior one for its station; there is no history.

Provides:
- Crash-resilient connections (WAL mode, busy timeout)
- Retry logic for lock and WSL disk I/O errors
- save_report() / load_report() for the latest_metar table
"""

import json
import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TypeVar

from metar_decoder import decode_report
from metar_fetch import normalize_station
from metar_models import Report

# ============================================================================
# Configuration
# ============================================================================

DB_BUSY_TIMEOUT_MS = 30000  # 30 seconds SQLite busy timeout
DB_MAX_RETRIES = 3          # Number of retry attempts
DB_RETRY_DELAY_SEC = 10     # Seconds between retries

SCRIPT_DIR = Path(__file__).parent
DATA_DIR = SCRIPT_DIR / "metar_data"
DB_PATH = DATA_DIR / "metar.db"

T = TypeVar('T')

logger = logging.getLogger(__name__)


# ============================================================================
# Database Connection
# ============================================================================

def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Create a database connection with crash-resilient settings.

    Args:
        db_path: Optional path to database (defaults to DB_PATH)

    Returns:
        sqlite3.Connection in WAL mode with a busy timeout
    """
    path = db_path or DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(path), timeout=DB_BUSY_TIMEOUT_MS / 1000)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute(f"PRAGMA busy_timeout={DB_BUSY_TIMEOUT_MS}")
    return conn


@contextmanager
def get_db_connection(db_path: Optional[Path] = None):
    """Context manager for connections with automatic cleanup.

    Usage:
        with get_db_connection() as conn:
            save_report(conn, report, fetch_time)
    """
    conn = get_connection(db_path)
    try:
        yield conn
    finally:
        conn.close()


def init_tables(conn: sqlite3.Connection) -> None:
    """Create the latest_metar table if it doesn't exist."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS latest_metar (
            station_id TEXT PRIMARY KEY,
            observation_time TEXT NOT NULL,
            fetch_time TEXT NOT NULL,
            raw_metar TEXT NOT NULL,
            decoded_json TEXT NOT NULL
        )
    """)
    commit_with_retry(conn, "init latest_metar table")


# ============================================================================
# Retry Logic
# ============================================================================

def execute_with_retry(
    operation: Callable[[sqlite3.Connection], T],
    conn: sqlite3.Connection,
    description: str = "database operation",
    max_retries: int = DB_MAX_RETRIES,
    retry_delay: int = DB_RETRY_DELAY_SEC
) -> T:
    """Execute a database operation with retry logic for lock errors.

    Args:
        operation: Function that takes connection and returns result
        conn: Database connection
        description: Description for logging
        max_retries: Maximum retry attempts
        retry_delay: Seconds between retries

    Returns:
        Result of the operation

    Raises:
        sqlite3.OperationalError: If the error is not retryable or all
            retries are exhausted
    """
    for attempt in range(1, max_retries + 1):
        try:
            return operation(conn)
        except sqlite3.OperationalError as e:
            error_str = str(e).lower()
            if "database is locked" not in error_str and "disk i/o error" not in error_str:
                raise
            if attempt == max_retries:
                logger.error(
                    "Database error during %s after %d attempts: %s",
                    description, max_retries, e
                )
                raise
            logger.warning(
                "Database error during %s (attempt %d/%d), retrying in %ds: %s",
                description, attempt, max_retries, retry_delay, e
            )
            time.sleep(retry_delay)

    raise RuntimeError(f"Unexpected state in execute_with_retry for {description}")


def commit_with_retry(conn: sqlite3.Connection, description: str = "commit") -> None:
    """Commit transaction with retry logic."""
    execute_with_retry(lambda c: c.commit(), conn, description)


# ============================================================================
# Reports
# ============================================================================

def save_report(conn: sqlite3.Connection, report: Report, fetch_time: str) -> None:
    """Store a report as the latest one for its station, replacing any prior row."""

    def do_replace(c):
        c.execute("""
            INSERT OR REPLACE INTO latest_metar (
                station_id, observation_time, fetch_time, raw_metar, decoded_json
            ) VALUES (?, ?, ?, ?, ?)
        """, (
            report.station,
            report.observation_time.isoformat(),
            fetch_time,
            report.raw,
            json.dumps(report.to_dict())
        ))
        c.commit()

    execute_with_retry(do_replace, conn, f"storing METAR for {report.station}")
    logger.info("Stored METAR for %s at %s",
                report.station, report.observation_time.isoformat())


def load_report(conn: sqlite3.Connection, station: str) -> Optional[Report]:
    """Return the latest stored report for a station, or None.

    The stored line is decoded again using its stored observation time, so
    the year and month match the first decode.
    """
    row = conn.execute(
        "SELECT raw_metar, observation_time FROM latest_metar WHERE station_id = ?",
        (normalize_station(station),)
    ).fetchone()
    if row is None:
        return None
    return decode_report(row[0], now=datetime.fromisoformat(row[1]))
