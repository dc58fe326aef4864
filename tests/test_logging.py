import json
import logging

from feed_printer.core.logging import ItemContextFilter, JsonFormatter, configure_logging, item_context


def _record(msg="hello") -> logging.LogRecord:
    return logging.LogRecord("feed_printer.test", logging.INFO, __file__, 1, msg, None, None)


def test_item_context_tags_records():
    flt = ItemContextFilter()
    rec = _record()
    flt.filter(rec)
    assert rec.item_id == "-"

    with item_context("tweet-42"):
        rec = _record()
        flt.filter(rec)
        assert rec.item_id == "tweet-42"

    rec = _record()
    flt.filter(rec)
    assert rec.item_id == "-"


def test_json_formatter_includes_item_id():
    rec = _record("printed")
    with item_context("abc"):
        ItemContextFilter().filter(rec)
    out = json.loads(JsonFormatter().format(rec))
    assert out["msg"] == "printed"
    assert out["item_id"] == "abc"
    assert out["level"] == "INFO"


def test_configure_logging_replaces_handlers(monkeypatch):
    monkeypatch.setenv("FEEDPRINTER_JSON_LOGS", "true")
    monkeypatch.setenv("FEEDPRINTER_LOG_LEVEL", "debug")
    root = configure_logging()
    configure_logging()
    assert len(root.handlers) == 1
    assert root.level == logging.DEBUG
    assert isinstance(root.handlers[0].formatter, JsonFormatter)
    assert any(isinstance(f, ItemContextFilter) for f in root.handlers[0].filters)
