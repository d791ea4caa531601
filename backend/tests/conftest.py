"""
backend/tests/conftest.py

Purpose:
    Puts the backend directory on sys.path so tests import the ``app``
    package the way uvicorn does, wherever pytest is started from.
"""

from __future__ import annotations

import sys
from pathlib import Path

_BACKEND_DIR = str(Path(__file__).resolve().parents[1])

if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)
