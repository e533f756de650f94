import logging

from registry_client.logging import SimpleLogger, configure_console_log, log


def test_format_with_source_and_payload():
    logger = SimpleLogger("registry_client.test")
    assert logger._format("sent", "Pipeline", {"sig": "abc"}) == "[Pipeline] sent {'sig': 'abc'}"
    assert logger._format("plain", None) == "plain"


def test_configure_level_by_name():
    configure_console_log("debug")
    assert log.level == logging.DEBUG
    configure_console_log("nonsense")
    assert log.level == logging.INFO


def test_success_logs_at_info(caplog):
    caplog.set_level(logging.INFO, logger="registry_client")
    log.success("done", source="test")
    assert "[test] done" in caplog.text
