import logging

from gmap_extractor import logging_config


def test_get_logger_does_not_create_log_directory(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)

    logger = logging_config.get_logger("gmap_extractor.tests.console_only")

    assert not (tmp_path / "logs").exists()
    assert all(not isinstance(handler, logging.FileHandler) for handler in logger.handlers)


def test_enable_file_logging_attaches_shared_handler(tmp_path) -> None:
    existing = logging_config.get_logger("gmap_extractor.tests.before_enable")
    try:
        log_file = logging_config.enable_file_logging(tmp_path / "run-logs")
        later = logging_config.get_logger("gmap_extractor.tests.after_enable")

        existing.info("first message")
        later.warning("second message")

        text = log_file.read_text(encoding="utf-8")
        assert "first message" in text
        assert "WARNING gmap_extractor.tests.after_enable: second message" in text
    finally:
        logging_config.disable_file_logging()

    assert all(not isinstance(handler, logging.FileHandler) for handler in existing.handlers)
    assert all(not isinstance(handler, logging.FileHandler) for handler in later.handlers)


def test_set_level_applies_to_package_loggers() -> None:
    logger = logging_config.get_logger("gmap_extractor.tests.levels")
    try:
        logging_config.set_level("debug")
        assert logger.level == logging.DEBUG
        assert all(handler.level == logging.DEBUG for handler in logger.handlers)
    finally:
        logging_config.set_level(logging_config.DEFAULT_LEVEL)
