"""Fingerprint-keyed cache for ProjectContext values.

Entries are invalidated by content fingerprint only; there is no time-to-live,
so a changed constraints file is never served stale.
"""

import threading
from pathlib import Path
from typing import Dict, Optional, Tuple

from contracts import ProjectContext

# (relative file name, mtime_ns, size) per consulted file; (name, None, None) when absent
Fingerprint = Tuple[Tuple[str, Optional[int], Optional[int]], ...]


def fingerprint_files(root: Path, names) -> Fingerprint:
    """Stat each consulted file under root."""
    entries = []
    for name in names:
        try:
            st = (root / name).stat()
        except OSError:
            entries.append((name, None, None))
            continue
        entries.append((name, st.st_mtime_ns, st.st_size))
    return tuple(entries)


class ContextCache:
    """Thread-safe map of project root -> (fingerprint, context)."""

    def __init__(self):
        self._entries: Dict[Path, Tuple[Fingerprint, ProjectContext]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, root: Path, fingerprint: Fingerprint) -> Optional[ProjectContext]:
        """Return the cached context if it was built from identical files."""
        with self._lock:
            entry = self._entries.get(root)
            if entry is not None and entry[0] == fingerprint:
                self.hits += 1
                return entry[1]
            self.misses += 1
            return None

    def put(self, root: Path, fingerprint: Fingerprint, context: ProjectContext) -> None:
        with self._lock:
            self._entries[root] = (fingerprint, context)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
