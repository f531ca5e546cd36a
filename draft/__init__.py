"""Draft system package.

Modules:
  - types  : constants, Seats, PickResult
  - pool   : word pool state machine (in-memory, pure)
  - ai     : bot pick policy
  - engine : transactional orchestration against GameRepo
"""

from __future__ import annotations

from .types import PickResult, Seats
from .pool import DraftPool, sanitize_words

__all__ = [
    "DraftPool",
    "PickResult",
    "Seats",
    "sanitize_words",
]
