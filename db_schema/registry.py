# db_schema/registry.py
"""Schema registry + applier.

Each schema module exposes ddl(now=..., schema_version=...) and optionally
migrate(cur, ensure_columns=...).
"""

from __future__ import annotations

import sqlite3
from types import ModuleType
from typing import Callable, Iterable, Mapping


# Signature compatible with GameRepo._ensure_table_columns(cur, table, columns)
EnsureColumnsFn = Callable[[sqlite3.Cursor, str, Mapping[str, str]], None]


def apply_all(
    cur: sqlite3.Cursor,
    *,
    modules: Iterable[ModuleType],
    now: str,
    schema_version: str,
    ensure_columns: EnsureColumnsFn,
) -> None:
    """Apply schema modules.

    Steps:
    1) one executescript with every module's DDL (CREATE ... IF NOT EXISTS)
    2) migrate() for modules that define it, in the same order
    """
    modules = list(modules)
    ddl_parts = [m.ddl(now=now, schema_version=schema_version) for m in modules]
    cur.executescript("\n\n".join(ddl_parts))

    for m in modules:
        migrate = getattr(m, "migrate", None)
        if migrate is None:
            continue
        migrate(cur, ensure_columns=ensure_columns)
