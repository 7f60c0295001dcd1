from __future__ import annotations

from .util import is_replayable, to_bytes

__all__ = (
    "is_replayable",
    "to_bytes",
)
