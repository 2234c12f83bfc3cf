"""
Start the campus walkway API under uvicorn.

``python run.py`` serves ``backend/campusnav/main.py``.  Host, port and
log level come from ``CAMPUSNAV_HOST``, ``CAMPUSNAV_PORT`` and
``CAMPUSNAV_LOG_LEVEL``.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict

import uvicorn

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def server_options() -> Dict[str, Any]:
    """Keyword arguments for :func:`uvicorn.run` read from the environment."""
    return {
        "host": os.getenv("CAMPUSNAV_HOST", "0.0.0.0"),
        "port": int(os.getenv("CAMPUSNAV_PORT", "8000")),
        "log_level": os.getenv("CAMPUSNAV_LOG_LEVEL", "info").lower(),
    }


def main() -> None:
    options = server_options()
    logging.basicConfig(level=options["log_level"].upper(), format=LOG_FORMAT)

    # ``backend`` is imported as a package from the directory holding this file.
    root = str(Path(__file__).resolve().parent)
    if root not in sys.path:
        sys.path.append(root)
    from backend.campusnav.main import app  # type: ignore

    uvicorn.run(app, **options)


if __name__ == "__main__":
    main()
