import json
import logging

from app.core.logging_config import JSONFormatter


def test_json_formatter_keeps_decision_fields():
    record = logging.LogRecord(
        name="app.services.request_service",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Request %s moved",
        args=("r-1",),
        exc_info=None,
    )
    record.previous_status = "budget_check"
    record.next_status = "no_budget"

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "Request r-1 moved"
    assert entry["level"] == "INFO"
    assert entry["previous_status"] == "budget_check"
    assert entry["next_status"] == "no_budget"
    assert "duration_ms" not in entry
