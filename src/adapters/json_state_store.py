"""File-per-record state adapter.

Implements the core StatePort with one JSON file per record:

    <state_dir>/global.json
    <state_dir>/groups/<group>.json
    <state_dir>/marks/<group>/<user>.json

Every write goes to a temporary file in the same directory and is renamed
into place, so a crash never leaves a half-written record behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from core.config import GlobalConfig, GroupConfig, WarnMark

LOGGER = logging.getLogger(__name__)


def safe_name(key: str) -> str:
    """Filesystem-safe file stem for a group or user id.

    Group ids are base64 and may contain `/` and `+`; the urlsafe alphabet
    never produces `_` or `-` on its own, so the mapping cannot collide.
    """

    return key.replace("/", "_").replace("+", "-")


def atomic_write_json(path: Path, obj: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(obj, handle, ensure_ascii=False, indent=2)
            handle.write("\n")
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.unlink(tmp)


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return data


class JsonStateStore:
    """Directory of JSON records that satisfies the StatePort contract."""

    def __init__(self, state_dir: str) -> None:
        self._root = Path(state_dir)

    @property
    def global_path(self) -> Path:
        return self._root / "global.json"

    @property
    def groups_dir(self) -> Path:
        return self._root / "groups"

    def group_path(self, group_id: str) -> Path:
        return self.groups_dir / f"{safe_name(group_id)}.json"

    def mark_path(self, group_id: str, user_id: str) -> Path:
        return self._root / "marks" / safe_name(group_id) / f"{safe_name(user_id)}.json"

    def init(self) -> None:
        """Create the directory layout if it does not exist."""

        self.groups_dir.mkdir(parents=True, exist_ok=True)
        (self._root / "marks").mkdir(parents=True, exist_ok=True)

    def load_global(self) -> GlobalConfig:
        """Return the global record, creating it with defaults on first use."""

        data = _read_json(self.global_path)
        if data is None:
            config = GlobalConfig()
            self.save_global(config)
            return config
        return GlobalConfig.from_dict(data)

    def save_global(self, config: GlobalConfig) -> None:
        atomic_write_json(self.global_path, config.to_dict())

    def has_group(self, group_id: str) -> bool:
        return self.group_path(group_id).exists()

    def load_group(self, group_id: str) -> GroupConfig:
        """Return the stored group record, or defaults when none exists."""

        data = _read_json(self.group_path(group_id))
        if data is None:
            return GroupConfig(group_id=group_id)
        config = GroupConfig.from_dict(data)
        if not config.group_id:
            config.group_id = group_id
        return config

    def save_group(self, config: GroupConfig) -> None:
        atomic_write_json(self.group_path(config.group_id), config.to_dict())

    def update_group(self, group_id: str, mutate: Callable[[GroupConfig], None]) -> GroupConfig:
        config = self.load_group(group_id)
        mutate(config)
        self.save_group(config)
        return config

    def list_group_ids(self) -> List[str]:
        if not self.groups_dir.exists():
            return []
        group_ids: List[str] = []
        for path in sorted(self.groups_dir.glob("*.json")):
            data = _read_json(path) or {}
            # The real id lives inside the record; the file stem is escaped.
            group_id = data.get("group_id")
            if group_id:
                group_ids.append(str(group_id))
        return group_ids

    def get_warn_mark(self, group_id: str, user_id: str) -> Optional[WarnMark]:
        path = self.mark_path(group_id, user_id)
        try:
            data = _read_json(path)
            return WarnMark.from_dict(data) if data is not None else None
        except (ValueError, KeyError, TypeError):
            LOGGER.warning("Ignoring unreadable warn mark %s", path)
            return None

    def put_warn_mark(self, group_id: str, user_id: str, mark: WarnMark) -> None:
        atomic_write_json(self.mark_path(group_id, user_id), mark.to_dict())

    def delete_warn_mark(self, group_id: str, user_id: str) -> None:
        path = self.mark_path(group_id, user_id)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
