import logging

from rich.logging import RichHandler


def setup_logger(name: str = "skyform", level: int = logging.ERROR) -> logging.Logger:
    """Configures and returns a logger with RichHandler."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # setup may run more than once; keep a single handler
    if not logger.handlers:
        handler = RichHandler(rich_tracebacks=True, markup=False, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)

    return logger


def set_level(level: str | int) -> None:
    """Adjusts the shared logger, accepting names like "DEBUG"."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.ERROR
    logger.setLevel(level)


# Global logger instance, quiet unless the CLI or caller raises the level
logger = setup_logger(level=logging.ERROR)
