from __future__ import annotations

from .convert import from_grid, to_grid

__all__ = ["from_grid", "to_grid"]
