# snippetbox/core/logging_config.py
"""Logging configuration shared by the app factory and the tests"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from snippetbox.core.config import Settings, settings


def setup_logging(current: Optional[Settings] = None):
    """
    Configure the root logger from LOG_LEVEL and LOG_DIR.

    Safe to call again: the console handler is attached once, and a file
    handler for a different LOG_DIR replaces the previous one.
    """
    current = current or settings
    log_dir = Path(current.LOG_DIR)

    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(current.LOG_LEVEL.upper())

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler (attach once)
    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
               for h in root_logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Rotating file handler, 10 MB per file, 5 backups
    log_file = str((log_dir / 'snippetbox.log').resolve())
    for handler in [h for h in root_logger.handlers if isinstance(h, RotatingFileHandler)]:
        if handler.baseFilename != log_file:
            root_logger.removeHandler(handler)
            handler.close()

    if not any(isinstance(h, RotatingFileHandler) for h in root_logger.handlers):
        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # The request log layer replaces uvicorn's access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return root_logger
