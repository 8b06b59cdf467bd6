import logging

from backend.core import config

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'

_QUIET_LOGGERS = ('sqlalchemy.engine', 'uvicorn.access')


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=level or config.LOG_LEVEL, format=LOG_FORMAT)

    # Only warnings and errors from chatty dependencies
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
