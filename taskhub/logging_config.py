from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level of the `taskhub` logger tree (`TASKHUB_LOG_LEVEL`).

    Handlers come from uvicorn. Authorization denials log at INFO under
    `taskhub.security.*`; store failures log at ERROR with a traceback.
    """

    package_logger = logging.getLogger("taskhub")
    package_logger.setLevel(level.upper())
    package_logger.propagate = True
