"""
Shared pytest configuration.

The database URL is read once when the settings module is imported, so
it has to point at a throwaway SQLite file before any test module pulls
in the application.
"""

import os
import sys
import tempfile
from pathlib import Path

_DB_DIR = tempfile.mkdtemp(prefix="campusnav-tests-")
os.environ.setdefault("CAMPUSNAV_DATABASE_URL", f"sqlite:///{Path(_DB_DIR, 'test.db').as_posix()}")

# Make the backend package importable when running tests directly via pytest
sys.path.append(str(Path(__file__).resolve().parents[1]))
