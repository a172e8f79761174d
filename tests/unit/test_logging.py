import json
import logging

from batchcost.utils.logging import JsonFormatter, RequestIdFilter, request_id_var


def _record(msg="hello", **extra):
    record = logging.LogRecord("batchcost.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_emits_extra_fields():
    line = JsonFormatter(service="batchcost").format(_record(batch_id=5, event_payload={"quantity": "2"}))
    payload = json.loads(line)

    assert payload["message"] == "hello"
    assert payload["service"] == "batchcost"
    assert payload["batch_id"] == 5
    assert payload["event_payload"] == {"quantity": "2"}
    assert "lineno" not in payload


def test_request_id_filter_reads_context():
    token = request_id_var.set("req-42")
    try:
        record = _record()
        RequestIdFilter().filter(record)
    finally:
        request_id_var.reset(token)

    assert record.request_id == "req-42"
    assert json.loads(JsonFormatter().format(record))["request_id"] == "req-42"
