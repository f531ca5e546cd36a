from __future__ import annotations

"""Process-level runtime pointers.

Only the active SQLite path lives here. Game data itself is never cached in
memory; every read/write goes through GameRepo.
"""

from typing import Optional

_DB_PATH: Optional[str] = None


def set_db_path(path: str) -> None:
    global _DB_PATH
    p = str(path or "").strip()
    if not p:
        raise ValueError("db_path is required")
    _DB_PATH = p


def get_db_path() -> str:
    if not _DB_PATH:
        raise RuntimeError("db_path is not configured (call state.set_db_path first)")
    return _DB_PATH
