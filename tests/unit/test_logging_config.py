import logging

import pytest

import logging_config


@pytest.fixture
def clean_logging():
    yield
    logging_config.shutdown_logging()


def test_setup_logging_is_idempotent_and_reversible(tmp_path, clean_logging):
    root = logging.getLogger()
    before = list(root.handlers)

    logging_config.setup_logging(log_dir=str(tmp_path), production_mode=False)
    installed = [handler for handler in root.handlers if handler not in before]
    logging_config.setup_logging(log_dir=str(tmp_path), production_mode=False)

    assert [handler for handler in root.handlers if handler not in before] == installed
    assert (tmp_path / "dispatch.log").exists()
    assert (tmp_path / "dispatch_debug.log").exists()
    assert any(
        getattr(handler, "baseFilename", "").endswith("dispatch_engine.log")
        for handler in logging.getLogger("MatchingEngine").handlers
    )

    logging_config.shutdown_logging()

    assert list(root.handlers) == before
    assert not any(
        getattr(handler, "baseFilename", "").endswith("dispatch_engine.log")
        for handler in logging.getLogger("NotificationDispatcher").handlers
    )


def test_engine_events_reach_the_engine_log(tmp_path, clean_logging):
    logging_config.setup_logging(log_dir=str(tmp_path), production_mode=True)

    logging.getLogger("BookingService").info("Booking b-1 moved pending -> accepted")
    logging_config.shutdown_logging()

    assert "Booking b-1 moved" in (tmp_path / "dispatch_engine.log").read_text(encoding="utf-8")
    assert not (tmp_path / "dispatch_debug.log").exists()
