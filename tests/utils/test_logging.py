import logging

from bookclub.utils.logging import ROOT_LOGGER_NAME, get_logger, set_level


def test_module_loggers_hang_off_the_package_logger():
    assert get_logger("cover_resolver").name == "bookclub.cover_resolver"
    assert get_logger("bookclub.db").name == "bookclub.db"
    assert get_logger().name == ROOT_LOGGER_NAME


def test_package_logger_has_a_single_handler():
    get_logger("a")
    get_logger("b")
    root = logging.getLogger(ROOT_LOGGER_NAME)
    assert len(root.handlers) == 1
    assert root.propagate is False


def test_set_level_applies_to_child_loggers():
    child = get_logger("catalog_service")
    original = logging.getLogger(ROOT_LOGGER_NAME).level
    try:
        set_level("debug")
        assert child.isEnabledFor(logging.DEBUG)
        set_level("warning")
        assert not child.isEnabledFor(logging.INFO)
        set_level("nonsense")
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.INFO
    finally:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(original)
