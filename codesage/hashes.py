"""File content hashing and a SQLite store of known hashes."""

from __future__ import annotations

import hashlib
import sqlite3
from pathlib import Path
from typing import Optional

_CHUNK = 64 * 1024


def calculate_md5_hash(file_path: str | Path) -> str:
    """Return the hex MD5 digest of a file's contents."""
    digest = hashlib.md5()
    with open(file_path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


class FileHashStore:
    """Persistent mapping from file path to the hash seen at last indexing."""

    def __init__(self, db_path: str | Path) -> None:
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        with self._conn:
            self._conn.execute(
                "CREATE TABLE IF NOT EXISTS file_hashes ("
                " file_path TEXT PRIMARY KEY,"
                " hash TEXT)"
            )

    def get(self, file_path: str | Path) -> Optional[str]:
        """Return the stored hash, or None if the file is unknown."""
        row = self._conn.execute(
            "SELECT hash FROM file_hashes WHERE file_path = ?", (str(file_path),)
        ).fetchone()
        return None if row is None else row[0]

    def set(self, file_path: str | Path, file_hash: str) -> None:
        with self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO file_hashes (file_path, hash) VALUES (?, ?)",
                (str(file_path), file_hash),
            )

    def delete_prefix(self, prefix: str | Path) -> int:
        """Forget every path starting with the prefix; return how many were removed."""
        text = str(prefix)
        with self._conn:
            cursor = self._conn.execute(
                "DELETE FROM file_hashes WHERE substr(file_path, 1, length(?)) = ?",
                (text, text),
            )
        return cursor.rowcount

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "FileHashStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()