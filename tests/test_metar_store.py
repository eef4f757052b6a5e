#!/usr/bin/env python3
"""
Tests for metar_store module.

Uses pytest fixtures for database isolation and cleanup.
"""

import sqlite3
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Import module under test
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))
from metar_decoder import decode_report
from metar_store import (
    commit_with_retry, execute_with_retry, get_connection, get_db_connection,
    init_tables, load_report, save_report
)

NOW = datetime(2020, 6, 16, 12, 0, tzinfo=timezone.utc)
FETCH_TIME = "2020-06-16T12:00:00+00:00"

OLDER = "KSFO 160356Z 28020KT 10SM FEW010 14/10 A2998 RMK AO2"
NEWER = "KSFO 160456Z 27024G33KT 10SM FEW009 SCT200 15/10 A2999 RMK AO2"


@pytest.fixture
def conn(tmp_path):
    """Create a temporary database with the store table."""
    connection = get_connection(tmp_path / "test_metar.db")
    init_tables(connection)
    yield connection
    connection.close()


class TestConnection:
    """Tests for connection setup."""

    def test_creates_parent_directory(self, tmp_path):
        """The data directory should be created on demand."""
        db_file = tmp_path / "nested" / "metar.db"
        with get_db_connection(db_file) as connection:
            init_tables(connection)
        assert db_file.exists()

    def test_wal_mode(self, conn):
        """Connections should use WAL journal mode."""
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"

    def test_init_tables_idempotent(self, conn):
        """Initialising twice should not fail."""
        init_tables(conn)
        tables = [row[0] for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'")]
        assert "latest_metar" in tables


class TestSaveAndLoad:
    """Tests for save_report and load_report."""

    def test_round_trip(self, conn):
        """A stored report should load back equal."""
        report = decode_report(NEWER, now=NOW)
        save_report(conn, report, FETCH_TIME)
        assert load_report(conn, "KSFO") == report

    def test_new_report_replaces_prior(self, conn):
        """Only the newest report per station should remain."""
        save_report(conn, decode_report(OLDER, now=NOW), FETCH_TIME)
        save_report(conn, decode_report(NEWER, now=NOW), FETCH_TIME)

        rows = conn.execute("SELECT station_id, raw_metar FROM latest_metar").fetchall()
        assert rows == [("KSFO", NEWER)]

    def test_stations_kept_apart(self, conn):
        """Different stations should have their own rows."""
        save_report(conn, decode_report(NEWER, now=NOW), FETCH_TIME)
        save_report(conn, decode_report(
            "KOAK 160453Z 27015KT 10SM CLR 16/09 A2999", now=NOW), FETCH_TIME)
        assert conn.execute("SELECT COUNT(*) FROM latest_metar").fetchone()[0] == 2

    def test_load_keeps_year_and_month(self, conn):
        """Loading later should not move the observation into the current month."""
        report = decode_report(NEWER, now=datetime(2019, 2, 20, tzinfo=timezone.utc))
        save_report(conn, report, FETCH_TIME)
        assert load_report(conn, "ksfo").observation_time == datetime(
            2019, 2, 16, 4, 56, tzinfo=timezone.utc)

    def test_load_missing(self, conn):
        """Unknown stations should give None."""
        assert load_report(conn, "KDEN") is None


class TestExecuteWithRetry:
    """Tests for execute_with_retry."""

    def test_success_first_try(self, conn):
        """Result of the operation should be returned."""
        assert execute_with_retry(lambda c: 42, conn) == 42

    def test_retries_locked(self, conn):
        """Lock errors should be retried."""
        operation = MagicMock(side_effect=[sqlite3.OperationalError("database is locked"), "ok"])
        assert execute_with_retry(operation, conn, retry_delay=0) == "ok"
        assert operation.call_count == 2

    def test_retries_exhausted(self, conn):
        """The last lock error should be raised after all attempts."""
        operation = MagicMock(side_effect=sqlite3.OperationalError("database is locked"))
        with pytest.raises(sqlite3.OperationalError):
            execute_with_retry(operation, conn, max_retries=2, retry_delay=0)
        assert operation.call_count == 2

    def test_non_retryable(self, conn):
        """Other operational errors should raise immediately."""
        operation = MagicMock(side_effect=sqlite3.OperationalError("no such table: x"))
        with pytest.raises(sqlite3.OperationalError):
            execute_with_retry(operation, conn, retry_delay=0)
        assert operation.call_count == 1

    def test_commit_with_retry(self, conn):
        """Commit should go through the retry wrapper."""
        conn.execute("INSERT INTO latest_metar VALUES ('KXXX', 't', 't', 'raw', '{}')")
        commit_with_retry(conn)
        assert conn.execute("SELECT COUNT(*) FROM latest_metar").fetchone()[0] == 1
