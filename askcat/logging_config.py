import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(funcName)s - %(lineno)d - %(message)s"


def setup_logging(level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """
    Configures the ``askcat`` logger.
    Writes to a rotating file when ``log_file`` is set. Never logs to stdout,
    which the remote plugin host uses as its RPC channel.
    """
    logger = logging.getLogger("askcat")
    logger.setLevel(level)

    if log_file:
        log_file = os.path.expanduser(log_file)
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        # Avoid adding handlers multiple times when AskCatSetup() is called again
        for handler in list(logger.handlers):
            if isinstance(handler, RotatingFileHandler):
                logger.removeHandler(handler)
                handler.close()

        file_handler = RotatingFileHandler(log_file, maxBytes=1024 * 1024, backupCount=2)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)

    logger.info(f"Logging configured (level={level}, file={log_file or 'none'})")
    return logger
