"""
Runtime configuration for the campus walkway backend.

Every tunable lives here as a module-level constant.  Each one can be
overridden through an environment variable so deployments (and the
test suite) can point the service at another database or change the
snapping tolerances without touching code.

Distances in the routing graph are planar degree units; the constants
below that end in ``_METERS`` are converted with
``METERS_PER_DEGREE`` before they reach the geometry kernel.
"""

from __future__ import annotations

import os
from pathlib import Path


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


# Storage lives next to the backend package, as backend/storage/.
STORAGE_DIR = Path(__file__).resolve().parents[2] / "storage"

DATABASE_URL: str = os.getenv(
    "CAMPUSNAV_DATABASE_URL",
    f"sqlite:///{(STORAGE_DIR / 'campusnav.db').as_posix()}",
)

# Approximate ground length of one degree at campus scale.  The whole
# network is treated as a flat plane, so a single factor is used for
# both axes.
METERS_PER_DEGREE: float = _float_env("CAMPUSNAV_METERS_PER_DEGREE", 111_320.0)

# Start/end points further than this from every walkway are rejected.
MAX_SNAP_METERS: float = _float_env("CAMPUSNAV_MAX_SNAP_METERS", 150.0)

# Nodes closer than this get a bridging edge during graph consolidation.
NODE_MERGE_METERS: float = _float_env("CAMPUSNAV_NODE_MERGE_METERS", 2.0)

# Snap radius used when magnetizing freshly drawn walkways.
DRAW_SNAP_METERS: float = _float_env("CAMPUSNAV_DRAW_SNAP_METERS", 3.0)

# Snap radius used when persisting a walkway whose vertices were edited.
EDIT_SNAP_METERS: float = _float_env("CAMPUSNAV_EDIT_SNAP_METERS", 3.0)

# Catmull–Rom sampling used for bends.
CURVE_SAMPLES: int = _int_env("CAMPUSNAV_CURVE_SAMPLES", 20)
CURVE_ALPHA: float = _float_env("CAMPUSNAV_CURVE_ALPHA", 0.5)

# Minimum fraction of a walkway's length that must fall inside a
# rectangle for box selection to pick it up.
SELECT_RATIO: float = _float_env("CAMPUSNAV_SELECT_RATIO", 0.5)
