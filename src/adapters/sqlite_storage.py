"""SQLite state adapter.

Implements the core StatePort using a simple SQLite database, as an
alternative to the file-per-record store. Each statement runs in its own
transaction, which gives the same crash consistency as temp-then-rename.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Callable, List, Optional

from core.config import GlobalConfig, GroupConfig, WarnMark


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the StatePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - global_config: the single process-wide settings record
        - group_configs: one policy record per watched group
        - warn_marks: sliding-window warning counter per (group, user)
        """

        with self._connect() as conn:
            # global_config holds exactly one row (id = 1) with the JSON record.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS global_config (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    data TEXT NOT NULL
                )
                """
            )
            # group_configs stores the whole GroupConfig as JSON so the schema
            # does not need to change whenever a policy field is added.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS group_configs (
                    group_id TEXT PRIMARY KEY,
                    data TEXT NOT NULL
                )
                """
            )
            # warn_marks keeps only the window start and the count.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS warn_marks (
                    group_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    first_ts INTEGER NOT NULL,
                    count INTEGER NOT NULL,
                    PRIMARY KEY (group_id, user_id)
                )
                """
            )

    def load_global(self) -> GlobalConfig:
        """Return the global record, creating it with defaults on first use."""

        with self._connect() as conn:
            row = conn.execute("SELECT data FROM global_config WHERE id = 1").fetchone()
        if row is None:
            config = GlobalConfig()
            self.save_global(config)
            return config
        return GlobalConfig.from_dict(json.loads(row["data"]))

    def save_global(self, config: GlobalConfig) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO global_config (id, data) VALUES (1, ?)
                ON CONFLICT(id) DO UPDATE SET data = excluded.data
                """,
                (json.dumps(config.to_dict()),),
            )

    def has_group(self, group_id: str) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM group_configs WHERE group_id = ?",
                (group_id,),
            ).fetchone()
        return row is not None

    def load_group(self, group_id: str) -> GroupConfig:
        """Return the stored group record, or defaults when none exists."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM group_configs WHERE group_id = ?",
                (group_id,),
            ).fetchone()
        if row is None:
            return GroupConfig(group_id=group_id)
        config = GroupConfig.from_dict(json.loads(row["data"]))
        config.group_id = group_id
        return config

    def save_group(self, config: GroupConfig) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO group_configs (group_id, data) VALUES (?, ?)
                ON CONFLICT(group_id) DO UPDATE SET data = excluded.data
                """,
                (config.group_id, json.dumps(config.to_dict(), ensure_ascii=False)),
            )

    def update_group(self, group_id: str, mutate: Callable[[GroupConfig], None]) -> GroupConfig:
        config = self.load_group(group_id)
        mutate(config)
        self.save_group(config)
        return config

    def list_group_ids(self) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT group_id FROM group_configs ORDER BY group_id").fetchall()
        return [row["group_id"] for row in rows]

    def get_warn_mark(self, group_id: str, user_id: str) -> Optional[WarnMark]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT first_ts, count FROM warn_marks WHERE group_id = ? AND user_id = ?",
                (group_id, user_id),
            ).fetchone()
        if row is None:
            return None
        return WarnMark(first_ts=int(row["first_ts"]), count=int(row["count"]))

    def put_warn_mark(self, group_id: str, user_id: str, mark: WarnMark) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO warn_marks (group_id, user_id, first_ts, count)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(group_id, user_id) DO UPDATE SET
                    first_ts = excluded.first_ts,
                    count = excluded.count
                """,
                (group_id, user_id, mark.first_ts, mark.count),
            )

    def delete_warn_mark(self, group_id: str, user_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM warn_marks WHERE group_id = ? AND user_id = ?",
                (group_id, user_id),
            )
