"""SCD-Cohort — Допоміжні утиліти"""
from .log_setup import setup_logging, setup_logging_from_config, PACKAGE_LOGGER

__all__ = [
    "setup_logging",
    "setup_logging_from_config",
    "PACKAGE_LOGGER",
]
