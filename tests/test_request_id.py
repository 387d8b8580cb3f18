# tests/test_request_id.py
from __future__ import annotations

import json
import logging

from arriendo.logging_config import JsonFormatter
from arriendo.middleware.request_id import accept_request_id, request_id_ctx


def test_well_formed_ids_are_kept():
    assert accept_request_id("  trace-0001:abc ") == "trace-0001:abc"


def test_malformed_or_missing_ids_are_replaced():
    for raw in (None, "", "short", "has spaces in it", "x" * 65, "line\nbreak-0001"):
        rid = accept_request_id(raw)
        assert rid != raw
        assert len(rid) == 32


def test_json_log_lines_carry_the_request_id():
    record = logging.LogRecord("arriendo.contracts", logging.INFO, __file__, 1, "contract started", None, None)
    record.contract_id = "c-1"

    token = request_id_ctx.set("trace-0001")
    try:
        line = json.loads(JsonFormatter().format(record))
    finally:
        request_id_ctx.reset(token)

    assert line["request_id"] == "trace-0001"
    assert line["contract_id"] == "c-1"
    assert line["message"] == "contract started"
