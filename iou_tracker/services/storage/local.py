"""
Local Key-Value Storage Implementations

DESIGN DECISION: One JSON file per key under the data directory.

TRADEOFFS:
- Whole-value writes only (fine: every caller does read-modify-write
  of the full list anyway)
- No locking; two overlapping writes from the same process can lose an
  update (last write wins). Single user, single device, so accepted.
- Writes go to a temp file first and are moved into place, so a crash
  mid-write never leaves a truncated file behind.
"""

from pathlib import Path
from typing import Optional
from urllib.parse import quote

from iou_tracker.services.storage.interface import KeyValueStore, StorageError


class JsonFileKeyValueStore(KeyValueStore):
    """
    Key-value store backed by JSON files on disk.

    Keys map to "<data_dir>/<percent-encoded key>.json", so distinct
    keys never share a file.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir).expanduser()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path_for(self, key: str) -> Path:
        if not key:
            raise StorageError("Storage key must not be empty")
        return self._data_dir / f"{quote(key, safe='')}.json"

    async def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {key!r}: {e}") from e

    async def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to write {key!r}: {e}") from e

    async def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key!r}: {e}") from e


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)
