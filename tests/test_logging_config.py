import logging

from brandpulse.logging_config import LOGGING_CONFIG, configure_app_logging


def test_every_formatter_is_used():
    used = {h["formatter"] for h in LOGGING_CONFIG["handlers"].values()}
    assert set(LOGGING_CONFIG["formatters"]) == used


def test_configure_app_logging_sets_root_level():
    configure_app_logging("warning")
    assert logging.getLogger().level == logging.WARNING
    assert LOGGING_CONFIG["root"]["level"] == "INFO"
    configure_app_logging("INFO")
