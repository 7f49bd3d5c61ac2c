import logging

from rich.logging import RichHandler

from livemart.utils import config


class CenteredFormatter(logging.Formatter):
    """Centres the logger name in a column as wide as the longest name seen so far."""

    width = 12

    def format(self, record):
        CenteredFormatter.width = max(CenteredFormatter.width, len(record.name))
        record.name = record.name.center(CenteredFormatter.width)
        return super().format(record)


def get_logger(name=None) -> logging.Logger:
    """
    Logger writing through a RichHandler.

    ``livemart.db.orders`` shows up as ``db.orders``. The level comes from
    config.LOG_LEVEL.
    """
    name = (name or "livemart").removeprefix("livemart.")
    logger = logging.getLogger(name)
    level = logging.getLevelName(config.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    if not logger.handlers:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(CenteredFormatter("[%(name)s]  %(message)s"))
        handler.setLevel(level)
        logger.addHandler(handler)
        logger.propagate = False

    return logger
