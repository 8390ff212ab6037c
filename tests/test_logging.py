import importlib
import json
import logging

from portfolio_api.core.logging_config import get_logger, setup_logging


def test_app_modules_import_with_real_loggers():
    for module in ("portfolio_api.core.cache", "portfolio_api.core.context", "portfolio_api.main"):
        importlib.import_module(module)

    main = importlib.import_module("portfolio_api.main")
    assert main.app.title == "portfolio-api"


def test_events_are_json_with_logger_name(caplog):
    setup_logging("INFO")
    with caplog.at_level(logging.INFO, logger="sample_module"):
        get_logger("sample_module").info("sample_event", count=2)

    records = [r for r in caplog.records if r.name == "sample_module"]
    event = json.loads(records[-1].getMessage())
    assert event["event"] == "sample_event"
    assert event["logger"] == "sample_module"
    assert event["level"] == "info"
    assert event["count"] == 2
