import logging

from backend.core.logging_config import configure_logging


def test_configure_logging_quiets_chatty_libraries() -> None:
    configure_logging('DEBUG')

    assert logging.getLogger('sqlalchemy.engine').level == logging.WARNING
    assert logging.getLogger('uvicorn.access').level == logging.WARNING
