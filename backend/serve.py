"""Run the attendance API with uvicorn.

Usage:
    python -m backend.serve
"""
import sys

import uvicorn

from backend.core import config
from backend.core.logging_config import configure_logging


def main() -> None:
    configure_logging()
    try:
        config.validate_runtime_config()
    except RuntimeError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)
    uvicorn.run("backend.main:app", host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
