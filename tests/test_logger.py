import logging

from rich.logging import RichHandler

from skyform.logger import logger, set_level, setup_logger


def test_setup_is_idempotent():
    first = setup_logger("skyform.test", level=logging.INFO)
    second = setup_logger("skyform.test", level=logging.DEBUG)

    assert first is second
    assert len(second.handlers) == 1
    assert isinstance(second.handlers[0], RichHandler)
    assert second.level == logging.DEBUG


def test_set_level_accepts_names():
    try:
        set_level("debug")
        assert logger.level == logging.DEBUG

        # Unknown names fall back to the quiet default
        set_level("chatty")
        assert logger.level == logging.ERROR
    finally:
        set_level(logging.ERROR)
