"""Caller-owned cache of decoded grid sets keyed by file identity."""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
import threading

from .codec import load
from .config import CodecConfig
from .gridset import GridSet

logger = logging.getLogger(__name__)


def file_token(path: str | os.PathLike) -> str:
    """Identity of a file on disk: resolved path, size and modification time."""
    resolved = Path(path).resolve()
    st = resolved.stat()
    payload = {"path": str(resolved), "size": int(st.st_size), "mtime_ns": int(st.st_mtime_ns)}
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()[:16]


class GridSetCache:
    """Decoded sets by path; a rewritten file gets a new token and is reloaded."""

    def __init__(self, config: CodecConfig | None = None) -> None:
        self.config = config or CodecConfig()
        self._lock = threading.Lock()
        self._entries: dict[Path, tuple[str, GridSet]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: str | os.PathLike) -> bool:
        key = Path(path).resolve()
        with self._lock:
            entry = self._entries.get(key)
        return entry is not None and entry[0] == file_token(key)

    def get(self, path: str | os.PathLike) -> GridSet:
        key = Path(path).resolve()
        token = file_token(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] == token:
                return entry[1]
        logger.debug("loading %s (token %s)", key, token)
        gridset = load(key, self.config)
        with self._lock:
            self._entries[key] = (token, gridset)
        return gridset

    def invalidate(self, path: str | os.PathLike) -> None:
        with self._lock:
            self._entries.pop(Path(path).resolve(), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
