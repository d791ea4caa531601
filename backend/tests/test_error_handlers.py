"""
backend/tests/test_error_handlers.py

Purpose:
    Global database exception handlers: status codes and logged tracebacks.
"""

from __future__ import annotations

import logging
import sys
from types import SimpleNamespace

import pytest
from pymongo.errors import ConnectionFailure, OperationFailure, ServerSelectionTimeoutError

sys.path.insert(0, "backend")

from app import main


def _request():
    return SimpleNamespace(method="POST", url=SimpleNamespace(path="/api/admin/legs/batch-status"))


@pytest.mark.asyncio
@pytest.mark.parametrize("handler, exc, code", [
    (main.db_timeout_handler, ServerSelectionTimeoutError("no primary"), 503),
    (main.db_connection_handler, ConnectionFailure("primary stepped down"), 503),
    (main.db_operation_handler, OperationFailure("not authorized"), 500),
])
async def test_database_errors_log_their_traceback(caplog, handler, exc, code):
    with caplog.at_level(logging.ERROR, logger="parlay"):
        resp = await handler(_request(), exc)

    assert resp.status_code == code
    record = caplog.records[-1]
    assert "/api/admin/legs/batch-status" in record.getMessage()
    assert record.exc_info[1] is exc
