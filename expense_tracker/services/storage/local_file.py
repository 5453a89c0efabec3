"""
Local File Storage Implementation

DESIGN DECISION: A local JSON file is used as the durable slot because:
1. The app is single-user and single-process
2. No database setup required
3. Users can back up or inspect their data by copying one file

TRADEOFFS:
- The whole collection is rewritten on every change (fine at personal scale)
- No locking: two processes sharing a data dir get last-write-wins

Each key maps to `<data_dir>/<key>.json`. Writes go to a temporary file
in the same directory and are moved into place with os.replace, so a
crash mid-write leaves the previous contents intact.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from expense_tracker.services.storage.interface import (
    KeyValueStorageInterface,
    StorageError,
)


class LocalFileStorage(KeyValueStorageInterface):
    """Key-value slots backed by one UTF-8 file per key."""

    SUFFIX = ".json"

    def __init__(self, data_dir: Union[str, Path], create: bool = True):
        self._data_dir = Path(data_dir)
        if create:
            try:
                self._data_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(
                    f"Cannot create data directory {self._data_dir}: {e}"
                )

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        """File path backing a key."""
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}{self.SUFFIX}"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def write(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self._data_dir,
                prefix=f".{key}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}")

    def describe(self) -> str:
        return f"Local files in {self._data_dir.resolve()}"
