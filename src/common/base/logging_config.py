"""
Logging setup shared by the launcher and the app.

Everything goes to the console and to a rotating file under
``constants.LOG_DIR``. The ``storefront`` and ``blazeblog`` loggers get their
own level so upstream request tracing can stay at DEBUG while the root
logger (and urllib3 with it) stays at INFO.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

import constants

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d:%(funcName)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
APP_LOGGERS = ('storefront', 'blazeblog')


def configure_logging(log_level: str = "INFO",
                      app_log_level: str = "DEBUG",
                      log_filename: Optional[str] = None) -> None:
    """
    Replace the root logger's handlers with a console and a rotating file handler.

    :param log_level: Root level, also applied to urllib3
    :param app_log_level: Level for the storefront and blazeblog loggers
    :param log_filename: File name inside the log directory, default ``storefront.log``
    """
    root_level = logging.getLevelName(log_level.upper())
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    log_dir = Path(constants.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / (log_filename or 'storefront.log')

    handlers = [
        logging.StreamHandler(),
        logging.handlers.RotatingFileHandler(log_path, maxBytes=1024 * 1024, backupCount=10, encoding='utf-8'),
    ]

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.setLevel(root_level)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in APP_LOGGERS:
        logging.getLogger(name).setLevel(logging.getLevelName(app_log_level.upper()))
    logging.getLogger('urllib3').setLevel(root_level)

    logging.info(f"Logging initialized: root={log_level}, app={app_log_level}, file={log_path}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
