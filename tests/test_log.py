import logging
import os
import stat

from rich.logging import RichHandler

from server_manager.log import setup_logger


def test_setup_logger_writes_private_file(tmp_path):
    log_file = tmp_path / "logs" / "server_manager.log"

    logger = setup_logger(log_file)
    logger.debug("Executing command: apt-get update -y")
    for handler in logger.handlers:
        handler.flush()

    assert "Executing command: apt-get update -y" in log_file.read_text()
    assert stat.S_IMODE(os.stat(log_file).st_mode) == 0o600


def test_console_level_follows_verbose(tmp_path):
    quiet = setup_logger(tmp_path / "a.log")
    rich_handlers = [h for h in quiet.handlers if isinstance(h, RichHandler)]
    assert rich_handlers[0].level == logging.WARNING

    loud = setup_logger(tmp_path / "b.log", verbose=True)
    rich_handlers = [h for h in loud.handlers if isinstance(h, RichHandler)]
    assert len(rich_handlers) == 1
    assert rich_handlers[0].level == logging.DEBUG
