"""timegrid Python package.

Timezone-aware calendar grid engine: visible ranges, day bucketing, overlap
columns and fuzzy event filtering.

Public API:
  - import from `timegrid.api` (preferred) or `import timegrid` (re-export)
"""

from __future__ import annotations

from .api import *  # noqa: F401,F403
from . import api as _api

__all__ = list(_api.__all__)
