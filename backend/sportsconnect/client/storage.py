"""Device-local key-value storage for the conversation snapshot."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as SchemaError

from sportsconnect.client.records import ConversationEntry
from sportsconnect.core.config import settings

logger = logging.getLogger(__name__)


class LocalStorage:
    """A JSON file holding string keys, the way a phone's async storage does."""

    def __init__(self, path: Path | None = None):
        self.path = path or settings.snapshot_path

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable local storage at {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get_item(self, key: str) -> Any:
        return self._read().get(key)

    def set_item(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data))

    def remove_item(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self.path.write_text(json.dumps(data))


class ConversationSnapshot:
    """Last known conversation list. Fallback only; never authoritative."""

    def __init__(self, storage: LocalStorage | None = None, key: str | None = None):
        self.storage = storage or LocalStorage()
        self.key = key or settings.snapshot_key

    def load(self) -> Optional[list[ConversationEntry]]:
        raw = self.storage.get_item(self.key)
        if not raw:
            return None
        try:
            return [ConversationEntry.model_validate(item) for item in raw]
        except SchemaError as e:
            logger.warning(f"Discarding malformed conversation snapshot: {e}")
            return None

    def save(self, entries: list[ConversationEntry]) -> None:
        self.storage.set_item(
            self.key,
            [e.model_dump(mode="json", by_alias=True) for e in entries],
        )

    def clear(self) -> None:
        self.storage.remove_item(self.key)
