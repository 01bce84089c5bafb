"""RU: Утилиты настройки логирования.

EN: Logging setup utilities.
"""

from __future__ import annotations

import logging
from typing import Final

import coloredlogs

DEFAULT_LOGGER_NAME: Final = "edit_forge"
LOG_FORMAT: Final = "%(asctime)s %(levelname)s %(name)s %(message)s"


def resolve_level(*, verbose: bool = False, quiet: bool = False) -> int:
    """Map CLI verbosity flags to a logging level; quiet wins over verbose."""
    if quiet:
        return logging.ERROR
    if verbose:
        return logging.DEBUG
    return logging.INFO


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """RU: Настраивает логирование пакета c учётом флагов.

    EN: Configure the package logger according to verbosity flags.
    """
    level = resolve_level(verbose=verbose, quiet=quiet)

    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    logger.setLevel(level)

    # RU: Избегаем двойных handlers при повторном вызове.
    # EN: Avoid double handlers if called multiple times.
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    coloredlogs.install(level=level, logger=logger, fmt=LOG_FORMAT)
    return logger
