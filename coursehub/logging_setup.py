import logging

import colorlog

LOG_FORMAT = (
    "%(log_color)s[%(asctime)s] %(levelname)-8s%(reset)s "
    "%(blue)s%(name)s%(reset)s - %(message)s"
)
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "red,bg_white",
}


def configure_logging(level="INFO"):
    """Attach a coloured console handler to the package logger (once)."""
    logger = logging.getLogger("coursehub")
    logger.setLevel(level)
    if any(getattr(h, "_coursehub", False) for h in logger.handlers):
        return logger

    handler = colorlog.StreamHandler()
    handler.setFormatter(colorlog.ColoredFormatter(
        LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors=LOG_COLORS,
    ))
    handler._coursehub = True
    logger.addHandler(handler)
    logger.propagate = False
    return logger
