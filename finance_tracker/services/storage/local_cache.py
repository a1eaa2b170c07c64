"""
Local Snapshot Cache

Keeps the last loaded data set on disk as a JSON document
{"goals": [...], "transactions": [...]} so the app still has something to
show when the remote store is down at startup.

One file per user inside the cache directory. File names are a hash of the
user id, so ids never need to be filesystem-safe and users never share a
file.
"""

import hashlib
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from finance_tracker.errors import StorageError, ValidationError
from finance_tracker.models.finance import FinanceSnapshot


class JsonSnapshotCache:
    """Per-user JSON snapshot files in a directory."""

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, user_id: str) -> Path:
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:32]
        return self._directory / f"{digest}.json"

    def load(self, user_id: str) -> Optional[FinanceSnapshot]:
        """
        Read a user's cached snapshot.

        Returns:
            The snapshot, or None if nothing is cached

        Raises:
            StorageError: If the file exists but can't be read or parsed
        """
        path = self.path_for(user_id)
        if not path.exists():
            return None
        try:
            payload = path.read_text(encoding="utf-8")
            return FinanceSnapshot.from_json(payload)
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            raise StorageError(f"Failed to read snapshot cache {path}: {e}")

    def save(self, user_id: str, snapshot: FinanceSnapshot) -> Path:
        """
        Write a user's snapshot, replacing any previous one atomically.

        Raises:
            StorageError: If the file can't be written
        """
        path = self.path_for(user_id)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(snapshot.to_json())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write snapshot cache {path}: {e}")
        return path

    def clear(self, user_id: str) -> None:
        self.path_for(user_id).unlink(missing_ok=True)
