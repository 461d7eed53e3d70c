# Console logging for the Visage backend, one colour per level.
import logging

import settings


class CustomFormatter(logging.Formatter):
    """
    Formats log records with an ANSI colour chosen by level.

    Usage:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter())
    """
    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    format_string = '[%(levelname)s] %(asctime)s %(name)s - %(message)s'

    FORMATS = {
        logging.DEBUG: dark_grey + format_string + reset,
        logging.INFO: grey + format_string + reset,
        logging.WARNING: yellow + format_string + reset,
        logging.ERROR: red + format_string + reset,
        logging.CRITICAL: bold_red + format_string + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno, self.format_string)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def get_logger(name: str = "visage") -> logging.Logger:
    """Return the application logger, attaching the console handler once."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setFormatter(CustomFormatter())
        logger.addHandler(ch)
        logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
        logger.propagate = False
    return logger


log = get_logger()
