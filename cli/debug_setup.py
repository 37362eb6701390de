"""Logging setup for CLI"""

import logging
import os

from settings import LOG_FILE

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(debug: bool, log_file: str = LOG_FILE) -> logging.Logger:
    """
    Configure the root logger

    Debug mode logs everything to ``log_file`` (append mode) and the console;
    otherwise only INFO and above go to the console.

    Args:
        debug: Whether debug mode is enabled
        log_file: Debug log file path

    Returns:
        The configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if debug:
        file_handler = logging.FileHandler(os.path.abspath(log_file), mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        root_logger.debug("[CLI] ===== CLI SESSION STARTED =====")
    else:
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)

    return root_logger
