"""
SCD-Cohort — Налаштування логування

Усі модулі пакету пишуть у logging.getLogger(__name__),
тобто в ієрархію логера "scd_cohort". setup_logging() встановлює
для неї єдиний формат, рівень і (опційно) файл.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union


PACKAGE_LOGGER = "scd_cohort"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True,
) -> logging.Logger:
    """
    Налаштувати логер пакету.

    Повторний виклик замінює раніше встановлені handlers.

    Args:
        level: Рівень логування (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Шлях до файлу логу (None = без файлу)
        console: Чи писати в stderr

    Returns:
        Логер пакету
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def setup_logging_from_config(config) -> logging.Logger:
    """Налаштувати логування з LoggingConfig"""
    return setup_logging(config.level, config.log_file, config.console)
