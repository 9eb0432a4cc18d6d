"""
SQLite database for Sentinel thermostat control.

Stores:
- The last adjustment (mode, time, hold temperature) read at the start of
  every run and written, as a unit, after a successful actuation
- Activity log (every decision, including "no change")
- Errors (sensor or thermostat failures)
"""

import sqlite3
import logging
import math
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
from contextlib import contextmanager

from .models import Mode, PersistedState, Setting

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent.parent / "data" / "sentinel.db"

KEY_MODE_OF_LAST_ADJUSTMENT = "modeOfLastAdjustment"
KEY_TIME_OF_LAST_ADJUSTMENT = "timeOfLastAdjustment"
KEY_CURRENT_HOLD_TEMPERATURE = "currentHoldTemperature"


def _parse_finite(raw: Optional[str], what: str) -> Optional[float]:
    """Stored number, or None if missing or unreadable."""
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        logger.warning(f"Ignoring unreadable stored {what}: {raw!r}")
        return None
    return value


class Database:
    """SQLite persistence for the thermostat's last adjustment and activity."""

    def __init__(self, db_path: Optional[Union[Path, str]] = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self._connection() as conn:
            conn.executescript("""
                -- Last adjustment, one row per key
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                );

                -- Every run's outcome
                CREATE TABLE IF NOT EXISTS activity_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                    room_temp_c REAL,
                    hold_temp_c REAL,     -- hold before this run, NULL on first run
                    mode TEXT,            -- 'HEAT', 'COOL', 'OFF' or NULL when nothing was sent
                    setpoint REAL,        -- new hold temperature if one was sent
                    reason TEXT,          -- 'initial', 'adjust', 'lockout', 'no_change'
                    message TEXT
                );
                CREATE INDEX IF NOT EXISTS idx_activity_timestamp ON activity_log(timestamp);

                -- Failures that ended a run
                CREATE TABLE IF NOT EXISTS error_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp DATETIME DEFAULT CURRENT_TIMESTAMP,
                    message TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_error_timestamp ON error_log(timestamp);
            """)
            logger.debug(f"Database initialized at {self.db_path}")

    # --- Last adjustment ---

    def get(self, key: str) -> Optional[str]:
        """Raw stored value for a state key, or None if never written."""
        with self._connection() as conn:
            row = conn.execute("SELECT value FROM state WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None

    def load_state(self) -> PersistedState:
        """Read the last adjustment. Unreadable values come back as None."""
        raw_mode = self.get(KEY_MODE_OF_LAST_ADJUSTMENT)
        raw_time = self.get(KEY_TIME_OF_LAST_ADJUSTMENT)
        raw_hold = self.get(KEY_CURRENT_HOLD_TEMPERATURE)

        mode = None
        if raw_mode is not None:
            try:
                mode = Mode(raw_mode.strip().upper())
            except ValueError:
                logger.warning(f"Ignoring unknown stored mode: {raw_mode!r}")

        return PersistedState(
            last_adjustment_mode=mode,
            last_adjustment_time=_parse_finite(raw_time, "adjustment time"),
            current_hold_temperature=_parse_finite(raw_hold, "hold temperature"),
        )

    def save_adjustment(self, setting: Setting, timestamp: Optional[float] = None):
        """Record a successfully applied setting. All three keys change together."""
        adjusted_at = int(timestamp if timestamp is not None else time.time())
        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        rows = [
            (KEY_CURRENT_HOLD_TEMPERATURE, setting.display_temperature, now),
            (KEY_MODE_OF_LAST_ADJUSTMENT, setting.mode.value, now),
            (KEY_TIME_OF_LAST_ADJUSTMENT, str(adjusted_at), now),
        ]
        with self._connection() as conn:
            conn.executemany("""
                INSERT INTO state (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """, rows)

    # --- Activity log ---

    def log_activity(
        self,
        message: str,
        room_temp_c: Optional[float] = None,
        hold_temp_c: Optional[float] = None,
        setting: Optional[Setting] = None,
        reason: Optional[str] = None,
    ):
        """Log the outcome of a run."""
        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with self._connection() as conn:
            conn.execute("""
                INSERT INTO activity_log (timestamp, room_temp_c, hold_temp_c, mode, setpoint, reason, message)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                now,
                room_temp_c,
                hold_temp_c,
                setting.mode.value if setting else None,
                float(setting.display_temperature) if setting else None,
                reason,
                message,
            ))

    def get_activity(
        self,
        hours: int = 24,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        """Get activity for the past N hours, newest first."""
        since = datetime.now() - timedelta(hours=hours)
        with self._connection() as conn:
            rows = conn.execute("""
                SELECT * FROM activity_log
                WHERE timestamp > ?
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
            """, (since.strftime("%Y-%m-%d %H:%M:%S"), limit)).fetchall()
            return [dict(row) for row in rows]

    # --- Errors ---

    def log_error(self, message: str):
        """Log a failure that ended a run."""
        now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with self._connection() as conn:
            conn.execute("""
                INSERT INTO error_log (timestamp, message) VALUES (?, ?)
            """, (now, message))

    def get_errors(self, hours: int = 24, limit: int = 100) -> List[Dict[str, Any]]:
        """Get errors for the past N hours, newest first."""
        since = datetime.now() - timedelta(hours=hours)
        with self._connection() as conn:
            rows = conn.execute("""
                SELECT * FROM error_log
                WHERE timestamp > ?
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
            """, (since.strftime("%Y-%m-%d %H:%M:%S"), limit)).fetchall()
            return [dict(row) for row in rows]
