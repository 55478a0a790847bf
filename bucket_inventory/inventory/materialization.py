"""
Local materialization cache.

Tracks the temporary local copy of each remote data file whose format has
no streaming decoder. At most one entry exists per key; a second request
for the same key reuses the entry instead of downloading again.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class MaterializedFile:
    """Cache entry for one data file.

    ``lock`` serializes the download of this key; ``ready`` flips to True
    only after ``local_path`` holds the complete object.
    """

    key: str
    index_in_manifest: int | None
    local_path: Path | None = None
    ready: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class MaterializationCache:
    """Key -> MaterializedFile mapping guarded by a single lock."""

    def __init__(self, *, temp_dir: Path | None = None) -> None:
        self._temp_dir = temp_dir
        self._lock = threading.Lock()
        self._files: dict[str, MaterializedFile] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._files

    def get(self, key: str) -> MaterializedFile | None:
        with self._lock:
            return self._files.get(key)

    def get_or_create(self, key: str, *, index_in_manifest: int | None) -> MaterializedFile:
        with self._lock:
            entry = self._files.get(key)
            if entry is None:
                entry = MaterializedFile(key=key, index_in_manifest=index_in_manifest)
                self._files[key] = entry
            else:
                entry.index_in_manifest = index_in_manifest
            return entry

    def new_local_file(self, key: str) -> Path:
        """Create an empty temp file named after the key's basename."""
        if self._temp_dir is not None:
            self._temp_dir.mkdir(parents=True, exist_ok=True)

        fd, name = tempfile.mkstemp(
            prefix=f"{Path(key).name}-",
            dir=self._temp_dir,
        )
        os.close(fd)
        return Path(name)

    def discard(self, key: str, *, entry: MaterializedFile | None = None) -> None:
        """Drop a cache entry and delete its local file.

        With ``entry`` given, the mapping for ``key`` is removed only while it
        still points at that entry, and only that entry's file is deleted; a
        newer download of the same key is left alone. Without it, whatever
        entry is current for ``key`` is dropped. Unknown keys are ignored and
        a file already gone is not an error.
        """
        with self._lock:
            current = self._files.get(key)
            if entry is None:
                entry = current
            if entry is not None and current is entry:
                del self._files[key]

        if entry is None or entry.local_path is None:
            return

        try:
            entry.local_path.unlink()
        except FileNotFoundError:
            pass

        LOGGER.debug(
            "removed local copy",
            extra={"key": key, "local_path": str(entry.local_path)},
        )
